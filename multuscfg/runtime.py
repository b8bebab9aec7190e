"""Building the runtime configuration handed to delegate plugins."""

from __future__ import annotations

import dataclasses
import ipaddress
import logging
import os
import posixpath
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .types import DelegateNetConf, IPAddress, K8sArgs, RuntimeConfig

log = logging.getLogger(__name__)

_DEVICE_INFO_BASE = "/var/run/k8s.cni.cncf.io/devinfo"


@dataclass
class CmdArgs:
    """Arguments of a single CNI command invocation."""

    container_id: str = ""
    netns: str = ""
    if_name: str = ""
    args: str = ""
    path: str = ""
    stdin_data: bytes = b""


@dataclass
class RuntimeConf:
    """Per-invocation settings passed to a delegate plugin."""

    container_id: str = ""
    netns: str = ""
    if_name: str = ""
    args: list[tuple[str, str]] = field(default_factory=list)
    capability_args: dict[str, Any] = field(default_factory=dict)


def get_cni_device_info_path(name: str) -> str:
    """Path of the device information file for the given attachment name."""
    return posixpath.join(_DEVICE_INFO_BASE, "cni", name.replace("/", "-"))


def merge_cni_runtime_config(
    runtime_config: Optional[RuntimeConfig], delegate: DelegateNetConf
) -> RuntimeConfig:
    """Return a copy of runtime_config with the delegate's requests applied."""
    merged = RuntimeConfig() if runtime_config is None else dataclasses.replace(runtime_config)
    if not delegate.master_plugin:
        if delegate.port_mappings_request is not None:
            merged.port_maps = delegate.port_mappings_request
        if delegate.bandwidth_request is not None:
            merged.bandwidth = delegate.bandwidth_request
        if delegate.ip_request is not None:
            merged.ips = delegate.ip_request
        if delegate.mac_request:
            merged.mac = delegate.mac_request
        if delegate.infiniband_guid_request:
            merged.infiniband_guid = delegate.infiniband_guid_request
        if delegate.device_id:
            merged.device_id = delegate.device_id
        log.debug("merge_cni_runtime_config: merged %r", merged)
    return merged


def delegate_runtime_config(
    container_id: str,
    delegate: Optional[DelegateNetConf],
    rc: Optional[RuntimeConfig],
    if_name: str,
) -> Optional[RuntimeConfig]:
    """Runtime config for a delegate, with a device info file when a device is set."""
    if delegate is None:
        return rc
    merged = merge_cni_runtime_config(rc, delegate)
    if merged.device_id:
        if merged.cni_device_info_file:
            log.debug("Overwriting existing CNIDeviceInfoFile %s", merged.cni_device_info_file)
        merged.cni_device_info_file = get_cni_device_info_path(
            f"{delegate.name}-{container_id}_{if_name}"
        )
        log.debug("Adding auto-generated CNIDeviceInfoFile: %s", merged.cni_device_info_file)
    return merged


def create_runtime_conf(
    netns: str,
    pod_namespace: str,
    pod_name: str,
    container_id: str,
    sandbox_id: str,
    pod_uid: str,
    if_name: str,
) -> RuntimeConf:
    """Base runtime settings with the Kubernetes arguments in a fixed order."""
    return RuntimeConf(
        container_id=container_id,
        netns=netns,
        if_name=if_name,
        args=[
            ("IgnoreUnknown", "true"),
            ("K8S_POD_NAMESPACE", pod_namespace),
            ("K8S_POD_NAME", pod_name),
            ("K8S_POD_INFRA_CONTAINER_ID", sandbox_id),
            ("K8S_POD_UID", pod_uid),
        ],
    )


def _merge_env_args(rt: RuntimeConf, cni_args: str) -> None:
    for arg in cni_args.split(";"):
        key, sep, value = arg.partition("=")
        if not sep:
            log.error("CNI_ARGS entry %r is not recognized as a CNI arg, skipped", arg)
            continue
        for index, (name, current) in enumerate(rt.args):
            if name == key and current == "" and value != "":
                rt.args[index] = (name, value)
                break
        else:
            rt.args.append((key, value))


def _capability_args(rc: RuntimeConfig) -> dict[str, Any]:
    caps: dict[str, Any] = {}
    if rc.port_maps:
        caps["portMappings"] = rc.port_maps
    if rc.bandwidth is not None:
        caps["bandwidth"] = rc.bandwidth
    if rc.ips:
        caps["ips"] = rc.ips
    if rc.mac:
        caps["mac"] = rc.mac
    if rc.infiniband_guid:
        caps["infinibandGUID"] = rc.infiniband_guid
    if rc.device_id:
        caps["deviceID"] = rc.device_id
    if rc.cni_device_info_file:
        caps["CNIDeviceInfoFile"] = rc.cni_device_info_file
    return caps


def new_cni_runtime_conf(
    container_id: str,
    sandbox_id: str,
    pod_name: str,
    pod_namespace: str,
    pod_uid: str,
    netns: str,
    if_name: str,
    rc: Optional[RuntimeConfig],
    delegate: Optional[DelegateNetConf],
) -> tuple[RuntimeConf, str]:
    """Runtime settings for an ADD or DEL request and the device info file path."""
    delegate_rc = delegate_runtime_config(container_id, delegate, rc, if_name)
    rt = create_runtime_conf(
        netns, pod_namespace, pod_name, container_id, sandbox_id, pod_uid, if_name
    )

    cni_args = os.environ.get("CNI_ARGS", "")
    if cni_args:
        log.debug("ARGS: %s", cni_args)
        _merge_env_args(rt, cni_args)

    device_info_file = ""
    if delegate_rc is not None:
        device_info_file = delegate_rc.cni_device_info_file
        rt.capability_args = _capability_args(delegate_rc)
    return rt, device_info_file


def create_cni_runtime_conf(
    args: CmdArgs,
    k8s_args: K8sArgs,
    if_name: str,
    rc: Optional[RuntimeConfig],
    delegate: Optional[DelegateNetConf],
) -> tuple[RuntimeConf, str]:
    """Runtime settings for a delegate, merged with its runtime config when given."""
    return new_cni_runtime_conf(
        args.container_id,
        k8s_args.k8s_pod_infra_container_id,
        k8s_args.k8s_pod_name,
        k8s_args.k8s_pod_namespace,
        k8s_args.k8s_pod_uid,
        args.netns,
        if_name,
        rc,
        delegate,
    )


def get_gateway_from_result(result: Mapping[str, Any]) -> list[Optional[IPAddress]]:
    """Gateways of the default routes in a CNI result document."""
    gateways: list[Optional[IPAddress]] = []
    for route in result.get("routes") or []:
        dst = route.get("dst")
        if dst is None:
            continue
        if ipaddress.ip_network(dst, strict=False).prefixlen == 0:
            gw = route.get("gw")
            gateways.append(None if gw is None else ipaddress.ip_address(gw))
    return gateways