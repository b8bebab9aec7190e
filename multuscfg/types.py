"""Common configuration types for the multi-network CNI plugin."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import Any, Optional, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class ConfigError(ValueError):
    """Raised when a network configuration cannot be loaded or changed."""


_MISSING = object()


def _require_object(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise ConfigError(f"{what}: expected a JSON object, got {type(data).__name__}")
    return data


def _field(data: dict, key: str) -> Any:
    """Look a key up the way JSON decoding matches struct fields.

    An exact match wins; otherwise the first key equal to it ignoring
    case is used.
    """
    if key in data:
        return data[key]
    folded = key.lower()
    for name, value in data.items():
        if isinstance(name, str) and name.lower() == folded:
            return value
    return _MISSING


def _str(data: dict, key: str, default: str = "") -> str:
    value = _field(data, key)
    if value is _MISSING or value is None:
        return default
    if not isinstance(value, str):
        raise ConfigError(f"{key}: expected a string, got {value!r}")
    return value


def _int(data: dict, key: str, default: int = 0) -> int:
    value = _field(data, key)
    if value is _MISSING or value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key}: expected an integer, got {value!r}")
    return value


def _opt_int(data: dict, key: str) -> Optional[int]:
    value = _field(data, key)
    if value is _MISSING or value is None:
        return None
    return _int(data, key)


def _bool(data: dict, key: str, default: bool = False) -> bool:
    value = _field(data, key)
    if value is _MISSING or value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigError(f"{key}: expected a boolean, got {value!r}")
    return value


def _opt_bool(data: dict, key: str) -> Optional[bool]:
    value = _field(data, key)
    if value is _MISSING or value is None:
        return None
    return _bool(data, key)


def _opt_obj(data: dict, key: str) -> Optional[dict]:
    value = _field(data, key)
    if value is _MISSING or value is None:
        return None
    return _require_object(value, key)


def _opt_list(data: dict, key: str) -> Optional[list]:
    value = _field(data, key)
    if value is _MISSING or value is None:
        return None
    if not isinstance(value, list):
        raise ConfigError(f"{key}: expected a list, got {value!r}")
    return value


def _opt_str_list(data: dict, key: str) -> Optional[list[str]]:
    items = _opt_list(data, key)
    if items is None:
        return None
    for item in items:
        if not isinstance(item, str):
            raise ConfigError(f"{key}: expected a list of strings, got {item!r}")
    return list(items)


def _parse_ip(text: Any) -> IPAddress:
    if not isinstance(text, str) or "%" in text:
        raise ConfigError(f"invalid IP address: {text!r}")
    try:
        return ipaddress.ip_address(text)
    except ValueError as exc:
        raise ConfigError(f"invalid IP address: {text!r}") from exc


@dataclass
class PortMapEntry:
    """A port mapping requested for a network attachment."""

    host_port: int = 0
    container_port: int = 0
    protocol: str = ""
    host_ip: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "PortMapEntry":
        data = _require_object(data, "portMapping")
        return cls(
            host_port=_int(data, "hostPort"),
            container_port=_int(data, "containerPort"),
            protocol=_str(data, "protocol"),
            host_ip=_str(data, "hostIP"),
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {
            "hostPort": self.host_port,
            "containerPort": self.container_port,
        }
        if self.protocol:
            out["protocol"] = self.protocol
        if self.host_ip:
            out["hostIP"] = self.host_ip
        return out


@dataclass
class BandwidthEntry:
    """Ingress and egress rate limits for a network attachment."""

    ingress_rate: int = 0
    ingress_burst: int = 0
    egress_rate: int = 0
    egress_burst: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> "BandwidthEntry":
        data = _require_object(data, "bandwidth")
        return cls(
            ingress_rate=_int(data, "ingressRate"),
            ingress_burst=_int(data, "ingressBurst"),
            egress_rate=_int(data, "egressRate"),
            egress_burst=_int(data, "egressBurst"),
        )

    def to_dict(self) -> dict:
        return {
            "ingressRate": self.ingress_rate,
            "ingressBurst": self.ingress_burst,
            "egressRate": self.egress_rate,
            "egressBurst": self.egress_burst,
        }


def _port_maps(data: dict, key: str) -> Optional[list[PortMapEntry]]:
    items = _opt_list(data, key)
    if items is None:
        return None
    return [PortMapEntry.from_dict(item) for item in items]


def _bandwidth(data: dict, key: str) -> Optional[BandwidthEntry]:
    section = _opt_obj(data, key)
    return None if section is None else BandwidthEntry.from_dict(section)


@dataclass
class RuntimeConfig:
    """Runtime capabilities passed to a delegate plugin."""

    port_maps: Optional[list[PortMapEntry]] = None
    bandwidth: Optional[BandwidthEntry] = None
    ips: Optional[list[str]] = None
    mac: str = ""
    infiniband_guid: str = ""
    device_id: str = ""
    cni_device_info_file: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "RuntimeConfig":
        data = _require_object(data, "runtimeConfig")
        return cls(
            port_maps=_port_maps(data, "portMappings"),
            bandwidth=_bandwidth(data, "bandwidth"),
            ips=_opt_str_list(data, "ips"),
            mac=_str(data, "mac"),
            infiniband_guid=_str(data, "infinibandGUID"),
            device_id=_str(data, "deviceID"),
            cni_device_info_file=_str(data, "CNIDeviceInfoFile"),
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {}
        if self.port_maps:
            out["portMappings"] = [entry.to_dict() for entry in self.port_maps]
        if self.bandwidth is not None:
            out["bandwidth"] = self.bandwidth.to_dict()
        if self.ips:
            out["ips"] = list(self.ips)
        if self.mac:
            out["mac"] = self.mac
        if self.infiniband_guid:
            out["infinibandGUID"] = self.infiniband_guid
        if self.device_id:
            out["deviceID"] = self.device_id
        if self.cni_device_info_file:
            out["CNIDeviceInfoFile"] = self.cni_device_info_file
        return out


@dataclass
class LogOptions:
    """Rotation settings for the log file."""

    max_age: Optional[int] = None
    max_size: Optional[int] = None
    max_backups: Optional[int] = None
    compress: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Any) -> "LogOptions":
        data = _require_object(data, "logOptions")
        return cls(
            max_age=_opt_int(data, "maxAge"),
            max_size=_opt_int(data, "maxSize"),
            max_backups=_opt_int(data, "maxBackups"),
            compress=_opt_bool(data, "compress"),
        )


@dataclass
class PluginConf:
    """The common part of a single CNI plugin configuration."""

    cni_version: str = ""
    name: str = ""
    type: str = ""
    capabilities: dict[str, bool] = field(default_factory=dict)
    ipam: dict[str, Any] = field(default_factory=dict)
    dns: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "PluginConf":
        data = _require_object(data, "plugin configuration")
        capabilities = _opt_obj(data, "capabilities") or {}
        for key, value in capabilities.items():
            if not isinstance(value, bool):
                raise ConfigError(f"capabilities.{key}: expected a boolean, got {value!r}")
        return cls(
            cni_version=_str(data, "cniVersion"),
            name=_str(data, "name"),
            type=_str(data, "type"),
            capabilities=dict(capabilities),
            ipam=dict(_opt_obj(data, "ipam") or {}),
            dns=dict(_opt_obj(data, "dns") or {}),
        )


@dataclass
class PluginConfList:
    """A CNI configuration list holding a chain of plugins."""

    cni_version: str = ""
    name: str = ""
    disable_check: bool = False
    plugins: Optional[list[PluginConf]] = None

    @classmethod
    def from_dict(cls, data: Any) -> "PluginConfList":
        data = _require_object(data, "configuration list")
        items = _opt_list(data, "plugins")
        return cls(
            cni_version=_str(data, "cniVersion"),
            name=_str(data, "name"),
            disable_check=_bool(data, "disableCheck"),
            plugins=None if items is None else [PluginConf.from_dict(i) for i in items],
        )


@dataclass
class DelegateNetConf:
    """A delegate network configuration attached to a pod."""

    conf: PluginConf = field(default_factory=PluginConf)
    conf_list: PluginConfList = field(default_factory=PluginConfList)
    name: str = ""
    ifname_request: str = ""
    mac_request: str = ""
    infiniband_guid_request: str = ""
    ip_request: Optional[list[str]] = None
    port_mappings_request: Optional[list[PortMapEntry]] = None
    bandwidth_request: Optional[BandwidthEntry] = None
    gateway_request: Optional[list[IPAddress]] = None
    is_filter_v4_gateway: bool = False
    is_filter_v6_gateway: bool = False
    master_plugin: bool = False
    conf_list_plugin: bool = False
    device_id: str = ""
    resource_name: str = ""
    raw: bytes = b""


@dataclass
class NetworkSelectionElement:
    """One element of the network attachment selection annotation."""

    name: str = ""
    namespace: str = ""
    ip_request: Optional[list[str]] = None
    mac_request: str = ""
    infiniband_guid_request: str = ""
    interface_request: str = ""
    deprecated_interface_request: str = ""
    port_mappings_request: Optional[list[PortMapEntry]] = None
    bandwidth_request: Optional[BandwidthEntry] = None
    device_id: str = ""
    cni_args: Optional[dict[str, Any]] = None
    gateway_request: Optional[list[IPAddress]] = None

    @classmethod
    def from_dict(cls, data: Any) -> "NetworkSelectionElement":
        data = _require_object(data, "network selection element")
        routes = _opt_list(data, "default-route")
        cni_args = _opt_obj(data, "cni-args")
        return cls(
            name=_str(data, "name"),
            namespace=_str(data, "namespace"),
            ip_request=_opt_str_list(data, "ips"),
            mac_request=_str(data, "mac"),
            infiniband_guid_request=_str(data, "infiniband-guid"),
            interface_request=_str(data, "interface"),
            deprecated_interface_request=_str(data, "interfaceRequest"),
            port_mappings_request=_port_maps(data, "portMappings"),
            bandwidth_request=_bandwidth(data, "bandwidth"),
            device_id=_str(data, "deviceID"),
            cni_args=None if cni_args is None else dict(cni_args),
            gateway_request=None if routes is None else [_parse_ip(r) for r in routes],
        )


@dataclass
class K8sArgs:
    """The CNI_ARGS values that Kubernetes passes to a plugin."""

    ignore_unknown: bool = False
    ip: Optional[IPAddress] = None
    k8s_pod_name: str = ""
    k8s_pod_namespace: str = ""
    k8s_pod_infra_container_id: str = ""
    k8s_pod_uid: str = ""


@dataclass
class ResourceInfo:
    """Device allocation of a pod resource."""

    index: int = 0
    device_ids: list[str] = field(default_factory=list)


@dataclass
class ControllerNetConf:
    """Configuration of the long-running daemon."""

    chroot_dir: str = ""
    conf_dir: str = ""
    cni_dir: str = ""
    bin_dir: str = ""
    log_file: str = ""
    log_level: str = ""
    log_to_stderr: bool = False
    metrics_port: Optional[int] = None
    multus_socket_dir: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "ControllerNetConf":
        data = _require_object(data, "daemon configuration")
        return cls(
            chroot_dir=_str(data, "chrootDir"),
            conf_dir=_str(data, "confDir"),
            cni_dir=_str(data, "cniDir"),
            bin_dir=_str(data, "binDir"),
            log_file=_str(data, "logFile"),
            log_level=_str(data, "logLevel"),
            log_to_stderr=_bool(data, "logToStderr"),
            metrics_port=_opt_int(data, "metricsPort"),
            multus_socket_dir=_str(data, "socketDir"),
        )


@dataclass
class NetConf:
    """The plugin's own network configuration."""

    cni_version: str = ""
    name: str = ""
    type: str = ""
    capabilities: dict[str, bool] = field(default_factory=dict)
    ipam: dict[str, Any] = field(default_factory=dict)
    dns: dict[str, Any] = field(default_factory=dict)
    raw_prev_result: Optional[dict[str, Any]] = None
    prev_result: Optional[dict[str, Any]] = None
    conf_dir: str = ""
    cni_dir: str = ""
    bin_dir: str = ""
    raw_delegates: Optional[list[dict[str, Any]]] = None
    delegates: list[DelegateNetConf] = field(default_factory=list)
    cluster_network: str = ""
    default_networks: Optional[list[str]] = None
    kubeconfig: str = ""
    log_file: str = ""
    log_level: str = ""
    log_to_stderr: bool = False
    log_options: Optional[LogOptions] = None
    runtime_config: Optional[RuntimeConfig] = None
    readiness_indicator_file: str = ""
    namespace_isolation: bool = False
    raw_non_isolated_namespaces: str = ""
    non_isolated_namespaces: list[str] = field(default_factory=list)
    system_namespaces: list[str] = field(default_factory=list)
    multus_namespace: str = ""
    retry_delete_on_error: bool = False

    def add_delegates(self, delegates) -> None:
        """Append delegates to the end of the delegate list."""
        self.delegates.extend(delegates)