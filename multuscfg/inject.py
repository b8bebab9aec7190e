"""Edits to raw delegate configuration documents."""

from __future__ import annotations

import json
import logging
from typing import Any, Union

from .types import ConfigError

log = logging.getLogger(__name__)

RawConfig = Union[bytes, str]

_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def _load_object(data: RawConfig, where: str) -> dict:
    try:
        obj = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(f"{where}: failed to unmarshal input: {exc}") from exc
    if not isinstance(obj, dict):
        raise ConfigError(f"{where}: configuration is not a JSON object")
    return obj


def _dump(obj: Any) -> bytes:
    text = json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    for raw, escaped in _ESCAPES:
        text = text.replace(raw, escaped)
    return text.encode("utf-8")


def _plugins(config: dict, where: str) -> list[dict]:
    if "plugins" not in config:
        raise ConfigError(f"{where}: unable to get plugin list")
    plugins = config["plugins"]
    if not isinstance(plugins, list):
        raise ConfigError(f"{where}: plugin list is not a list")
    for index, plugin in enumerate(plugins):
        if not isinstance(plugin, dict):
            raise ConfigError(f"{where}: plugin #{index} is not an object")
    return plugins


def add_device_id(data: RawConfig, device_id: str) -> bytes:
    """Return the configuration with deviceID and pciBusID set."""
    config = _load_object(data, "add_device_id")
    config["deviceID"] = device_id
    config["pciBusID"] = device_id
    result = _dump(config)
    log.debug("add_device_id: updated config %s", result.decode("utf-8"))
    return result


def add_device_id_in_conf_list(data: RawConfig, device_id: str) -> bytes:
    """Return the configuration list with deviceID and pciBusID set on every plugin."""
    config = _load_object(data, "add_device_id_in_conf_list")
    for plugin in _plugins(config, "add_device_id_in_conf_list"):
        plugin["deviceID"] = device_id
        plugin["pciBusID"] = device_id
    result = _dump(config)
    log.debug("add_device_id_in_conf_list: updated config %s", result.decode("utf-8"))
    return result


def inject_cni_args(config: dict, args: dict) -> None:
    """Merge args into config["args"]["cni"], changing config in place."""
    if not isinstance(args, dict):
        raise ConfigError("cni-args must be an object")
    if "args" not in config:
        config["args"] = {"cni": dict(args)}
        return
    section = config["args"]
    if not isinstance(section, dict):
        raise ConfigError("'args' in configuration is not an object")
    if "cni" not in section:
        section["cni"] = dict(args)
        return
    cni = section["cni"]
    if not isinstance(cni, dict):
        raise ConfigError("'args.cni' in configuration is not an object")
    cni.update(args)


def add_cni_args_in_config(data: RawConfig, args: dict) -> bytes:
    """Return the configuration with args merged into args.cni."""
    config = _load_object(data, "add_cni_args_in_config")
    inject_cni_args(config, args)
    return _dump(config)


def add_cni_args_in_conf_list(data: RawConfig, args: dict) -> bytes:
    """Return the configuration list with args merged into every plugin's args.cni."""
    config = _load_object(data, "add_cni_args_in_conf_list")
    for plugin in _plugins(config, "add_cni_args_in_conf_list"):
        inject_cni_args(plugin, args)
    return _dump(config)