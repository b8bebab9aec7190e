"""Loading delegate network configurations and checking their gateways."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Optional, Union

from .inject import (
    add_cni_args_in_conf_list,
    add_cni_args_in_config,
    add_device_id,
    add_device_id_in_conf_list,
)
from .types import (
    ConfigError,
    DelegateNetConf,
    IPAddress,
    NetworkSelectionElement,
    PluginConf,
    PluginConfList,
)

log = logging.getLogger(__name__)

RawConfig = Union[bytes, str]

ECMP_ERROR = "multus does not support ECMP for default-route"


def _decode(data: RawConfig, where: str) -> Any:
    try:
        return json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as exc:
        raise ConfigError(f"{where}: error unmarshalling configuration: {exc}") from exc


def _as_bytes(data: RawConfig) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


def load_delegate_net_conf_list(data: RawConfig, delegate: DelegateNetConf) -> None:
    """Fill the delegate's configuration list from raw JSON."""
    log.debug("load_delegate_net_conf_list: %r, %r", data, delegate)
    delegate.conf_list = PluginConfList.from_dict(
        _decode(data, "load_delegate_net_conf_list")
    )
    plugins = delegate.conf_list.plugins
    if plugins is None:
        raise ConfigError(
            "load_delegate_net_conf_list: delegate must have the 'type' or 'plugin' field"
        )
    if not plugins or plugins[0].type == "":
        raise ConfigError(
            "load_delegate_net_conf_list: a plugin delegate must have the 'type' field"
        )
    delegate.conf_list_plugin = True
    delegate.name = delegate.conf_list.name


def _is_ipv4(address: IPAddress) -> bool:
    if address.version == 4:
        return True
    return getattr(address, "ipv4_mapped", None) is not None


def _apply_selection(
    delegate: DelegateNetConf, element: NetworkSelectionElement, device_id: str
) -> None:
    if element.name:
        delegate.name = f"{element.namespace}/{element.name}"
    if element.interface_request:
        delegate.ifname_request = element.interface_request
    if element.mac_request:
        delegate.mac_request = element.mac_request
    if element.ip_request is not None:
        delegate.ip_request = element.ip_request
    if element.bandwidth_request is not None:
        delegate.bandwidth_request = element.bandwidth_request
    if element.port_mappings_request is not None:
        delegate.port_mappings_request = element.port_mappings_request
    if element.gateway_request is not None:
        existing = delegate.gateway_request or []
        delegate.gateway_request = list(existing) + list(element.gateway_request)
    if element.infiniband_guid_request:
        delegate.infiniband_guid_request = element.infiniband_guid_request
    if element.device_id:
        if device_id:
            log.debug(
                "Both runtime config and resource map provide deviceID; "
                "ignoring runtime config"
            )
        else:
            delegate.device_id = element.device_id


def load_delegate_net_conf(
    data: RawConfig,
    net_element: Optional[NetworkSelectionElement] = None,
    device_id: str = "",
    resource_name: str = "",
) -> DelegateNetConf:
    """Build a DelegateNetConf from raw CNI JSON and an optional selection element."""
    log.debug("load_delegate_net_conf: %r, %r, %s", data, net_element, device_id)
    delegate = DelegateNetConf()
    delegate.conf = PluginConf.from_dict(_decode(data, "load_delegate_net_conf"))
    delegate.name = delegate.conf.name
    raw = _as_bytes(data)
    cni_args = net_element.cni_args if net_element is not None else None

    if delegate.conf.type == "":
        try:
            load_delegate_net_conf_list(raw, delegate)
        except ConfigError as exc:
            raise ConfigError(f"load_delegate_net_conf: failed with: {exc}") from exc
        if device_id:
            raw = add_device_id_in_conf_list(raw, device_id)
            delegate.resource_name = resource_name
            delegate.device_id = device_id
        if cni_args is not None:
            raw = add_cni_args_in_conf_list(raw, cni_args)
    else:
        if device_id:
            raw = add_device_id(raw, device_id)
            delegate.resource_name = resource_name
            delegate.device_id = device_id
        if cni_args is not None:
            raw = add_cni_args_in_config(raw, cni_args)

    if net_element is not None:
        _apply_selection(delegate, net_element, device_id)

    delegate.raw = raw
    return delegate


def check_gateway_config(delegates: Iterable[DelegateNetConf]) -> None:
    """Reject more than one default gateway per family and set the filter flags."""
    delegates = list(delegates)
    requested = [gw for d in delegates for gw in (d.gateway_request or [])]
    v4_count = sum(1 for gw in requested if _is_ipv4(gw))
    v6_count = len(requested) - v4_count
    if v4_count > 1 or v6_count > 1:
        raise ConfigError(ECMP_ERROR)

    for delegate in delegates:
        gateways = delegate.gateway_request or []
        delegate.is_filter_v4_gateway = not any(_is_ipv4(gw) for gw in gateways)
        delegate.is_filter_v6_gateway = all(_is_ipv4(gw) for gw in gateways)


def check_system_namespaces(namespace: str, system_namespaces: Iterable[str]) -> bool:
    """Tell whether the namespace is one of the system namespaces."""
    return namespace in system_namespaces