"""Loading the plugin's own configuration and the daemon configuration."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from .delegate import load_delegate_net_conf
from .types import (
    _MISSING,
    ConfigError,
    ControllerNetConf,
    LogOptions,
    NetConf,
    PluginConf,
    RuntimeConfig,
    _bool,
    _field,
    _opt_list,
    _opt_obj,
    _opt_str_list,
    _require_object,
    _str,
)

log = logging.getLogger(__name__)

RawConfig = Union[bytes, str]

DEFAULT_CNI_DIR = "/var/lib/cni/multus"
DEFAULT_CONF_DIR = "/etc/cni/multus/net.d"
DEFAULT_BIN_DIR = "/opt/cni/bin"
DEFAULT_READINESS_INDICATOR_FILE = ""
DEFAULT_MULTUS_NAMESPACE = "kube-system"
DEFAULT_NON_ISOLATED_NAMESPACE = "default"
DEFAULT_MULTUS_DAEMON_CONFIG_FILE = "/etc/cni/net.d/multus.d/daemon-config.json"
DEFAULT_MULTUS_RUN_DIR = "/run/multus/"


def get_default_net_conf() -> NetConf:
    """A NetConf holding the default settings."""
    return NetConf(
        bin_dir=DEFAULT_BIN_DIR,
        conf_dir=DEFAULT_CONF_DIR,
        cni_dir=DEFAULT_CNI_DIR,
        log_to_stderr=True,
        multus_namespace=DEFAULT_MULTUS_NAMESPACE,
        non_isolated_namespaces=[DEFAULT_NON_ISOLATED_NAMESPACE],
        readiness_indicator_file=DEFAULT_READINESS_INDICATOR_FILE,
        system_namespaces=["kube-system"],
    )


def _decode(data: RawConfig, where: str) -> dict:
    try:
        obj = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as exc:
        raise ConfigError(f"{where}: failed to load configuration: {exc}") from exc
    return _require_object(obj, where)


def _str_list_or_keep(data: dict, key: str, current: Optional[list[str]]) -> Optional[list[str]]:
    """A list field replaces the current value; an explicit null clears it."""
    value = _field(data, key)
    if value is _MISSING:
        return current
    return _opt_str_list(data, key)


def _raw_delegates(data: dict) -> Optional[list[dict[str, Any]]]:
    items = _opt_list(data, "delegates")
    if items is None:
        return None
    for index, item in enumerate(items):
        if item is not None and not isinstance(item, dict):
            raise ConfigError(f"delegates[{index}]: expected a JSON object, got {item!r}")
    return list(items)


def _apply_fields(conf: NetConf, data: dict) -> None:
    base = PluginConf.from_dict(data)
    conf.cni_version = base.cni_version
    conf.name = base.name
    conf.type = base.type
    conf.capabilities = base.capabilities
    conf.ipam = base.ipam
    conf.dns = base.dns

    conf.raw_prev_result = _opt_obj(data, "prevResult")
    conf.conf_dir = _str(data, "confDir", conf.conf_dir)
    conf.cni_dir = _str(data, "cniDir", conf.cni_dir)
    conf.bin_dir = _str(data, "binDir", conf.bin_dir)
    conf.raw_delegates = _raw_delegates(data)
    conf.cluster_network = _str(data, "clusterNetwork", conf.cluster_network)
    conf.default_networks = _str_list_or_keep(data, "defaultNetworks", conf.default_networks)
    conf.kubeconfig = _str(data, "kubeconfig", conf.kubeconfig)
    conf.log_file = _str(data, "logFile", conf.log_file)
    conf.log_level = _str(data, "logLevel", conf.log_level)
    conf.log_to_stderr = _bool(data, "logToStderr", conf.log_to_stderr)

    options = _opt_obj(data, "logOptions")
    conf.log_options = None if options is None else LogOptions.from_dict(options)
    runtime = _opt_obj(data, "runtimeConfig")
    conf.runtime_config = None if runtime is None else RuntimeConfig.from_dict(runtime)

    conf.readiness_indicator_file = _str(
        data, "readinessindicatorfile", conf.readiness_indicator_file
    )
    conf.namespace_isolation = _bool(data, "namespaceIsolation", conf.namespace_isolation)
    conf.raw_non_isolated_namespaces = _str(
        data, "globalNamespaces", conf.raw_non_isolated_namespaces
    )
    conf.system_namespaces = (
        _str_list_or_keep(data, "systemNamespaces", conf.system_namespaces) or []
    )
    conf.multus_namespace = _str(data, "multusNamespace", conf.multus_namespace)
    conf.retry_delete_on_error = _bool(data, "retryDeleteOnError", conf.retry_delete_on_error)


def _encode(obj: Any) -> bytes:
    return json.dumps(obj, separators=(",", ":"), sort_keys=True).encode("utf-8")


def load_net_conf(data: RawConfig) -> NetConf:
    """Parse the plugin configuration read from stdin into a NetConf."""
    log.debug("load_net_conf: %r", data)
    conf = get_default_net_conf()
    try:
        _apply_fields(conf, _decode(data, "load_net_conf"))
    except ConfigError as exc:
        raise ConfigError(f"load_net_conf: failed to load netconf: {exc}") from exc

    if conf.raw_prev_result is not None:
        conf.prev_result = dict(conf.raw_prev_result)
        conf.raw_prev_result = None

    if not conf.raw_delegates and conf.cluster_network == "":
        raise ConfigError("load_net_conf: at least one delegate/clusterNetwork must be specified")

    if conf.raw_non_isolated_namespaces:
        conf.non_isolated_namespaces = [
            item.strip() for item in conf.raw_non_isolated_namespaces.split(",")
        ]

    if conf.cluster_network == "":
        for index, raw in enumerate(conf.raw_delegates or []):
            try:
                delegate = load_delegate_net_conf(_encode(raw), None, "", "")
            except ConfigError as exc:
                raise ConfigError(
                    f"load_net_conf: failed to load delegate {index} config: {exc}"
                ) from exc
            conf.delegates.append(delegate)
        conf.raw_delegates = None
        # The first delegate is always the master plugin.
        conf.delegates[0].master_plugin = True

    return conf


def load_daemon_net_conf(config_path: Union[str, Path]) -> tuple[ControllerNetConf, bytes]:
    """Read the daemon configuration file; return it parsed and as raw bytes."""
    try:
        raw = Path(config_path).read_bytes()
    except OSError as exc:
        raise ConfigError(f"failed to read the config file's contents: {exc}") from exc

    try:
        conf = ControllerNetConf.from_dict(_decode(raw, "daemon configuration"))
    except ConfigError as exc:
        raise ConfigError(f"failed to unmarshall the daemon configuration: {exc}") from exc

    if not conf.cni_dir:
        conf.cni_dir = DEFAULT_CNI_DIR
    if not conf.conf_dir:
        conf.conf_dir = DEFAULT_CONF_DIR
    if not conf.bin_dir:
        conf.bin_dir = DEFAULT_BIN_DIR
    if not conf.multus_socket_dir:
        conf.multus_socket_dir = DEFAULT_MULTUS_RUN_DIR
    return conf, raw