import ipaddress

import pytest

from multuscfg.types import (
    BandwidthEntry,
    ConfigError,
    ControllerNetConf,
    DelegateNetConf,
    LogOptions,
    NetConf,
    NetworkSelectionElement,
    PluginConf,
    PluginConfList,
    PortMapEntry,
    RuntimeConfig,
)


def test_port_map_entry_from_dict():
    entry = PortMapEntry.from_dict({"hostPort": 8080, "containerPort": 80, "protocol": "tcp"})
    assert entry == PortMapEntry(host_port=8080, container_port=80, protocol="tcp")


def test_port_map_entry_to_dict_omits_empty_fields():
    entry = PortMapEntry(host_port=8080, container_port=80, protocol="tcp")
    assert entry.to_dict() == {"hostPort": 8080, "containerPort": 80, "protocol": "tcp"}


def test_port_map_entry_round_trip():
    data = {"hostPort": 1, "containerPort": 2, "protocol": "udp", "hostIP": "10.0.0.1"}
    assert PortMapEntry.from_dict(data).to_dict() == data


def test_keys_match_ignoring_case():
    entry = PortMapEntry.from_dict({"HOSTPORT": 1, "containerport": 2})
    assert (entry.host_port, entry.container_port) == (1, 2)


@pytest.mark.parametrize("value", ["8080", 80.5, True])
def test_port_map_entry_rejects_wrong_types(value):
    with pytest.raises(ConfigError):
        PortMapEntry.from_dict({"hostPort": value})


def test_from_dict_rejects_non_object():
    with pytest.raises(ConfigError):
        PortMapEntry.from_dict([1, 2])


def test_bandwidth_round_trip():
    data = {"ingressRate": 100, "ingressBurst": 200, "egressRate": 100, "egressBurst": 200}
    entry = BandwidthEntry.from_dict(data)
    assert entry == BandwidthEntry(100, 200, 100, 200)
    assert entry.to_dict() == data


def test_runtime_config_port_mappings():
    rc = RuntimeConfig.from_dict(
        {"portMappings": [{"hostPort": 8080, "containerPort": 80, "protocol": "tcp"}]}
    )
    assert rc.port_maps is not None
    assert len(rc.port_maps) == 1
    assert rc.port_maps[0].host_port == 8080
    assert rc.bandwidth is None


def test_runtime_config_empty_to_dict():
    assert RuntimeConfig().to_dict() == {}


def test_runtime_config_round_trip():
    data = {
        "portMappings": [{"hostPort": 1, "containerPort": 2}],
        "bandwidth": {"ingressRate": 1, "ingressBurst": 2, "egressRate": 3, "egressBurst": 4},
        "ips": ["10.0.0.1/24"],
        "mac": "02:00:00:00:00:01",
        "infinibandGUID": "00:00:00:00:00:00:00:01",
        "deviceID": "0000:00:00.0",
        "CNIDeviceInfoFile": "/tmp/info.json",
    }
    assert RuntimeConfig.from_dict(data).to_dict() == data


def test_log_options_values():
    opts = LogOptions.from_dict({"maxAge": 5, "maxSize": 100, "maxBackups": 5, "compress": True})
    assert opts.max_age == 5
    assert opts.max_backups == 5
    assert opts.max_size == 100
    assert opts.compress is True


def test_log_options_missing_values_are_none():
    opts = LogOptions.from_dict({})
    assert (opts.max_age, opts.max_size, opts.max_backups, opts.compress) == (None, None, None, None)


def test_plugin_conf_from_dict():
    conf = PluginConf.from_dict({"name": "weave1", "cniVersion": "0.2.0", "type": "weave-net"})
    assert conf.name == "weave1"
    assert conf.cni_version == "0.2.0"
    assert conf.type == "weave-net"


def test_plugin_conf_rejects_non_bool_capability():
    with pytest.raises(ConfigError):
        PluginConf.from_dict({"type": "x", "capabilities": {"portMappings": "yes"}})


def test_plugin_conf_list_without_plugins():
    conf_list = PluginConfList.from_dict({"name": "second-network"})
    assert conf_list.plugins is None
    assert conf_list.name == "second-network"


def test_plugin_conf_list_with_plugins():
    conf_list = PluginConfList.from_dict(
        {"name": "weave-list", "plugins": [{"type": "weave"}, {"type": "other"}]}
    )
    assert [p.type for p in conf_list.plugins] == ["weave", "other"]


def test_selection_element_without_gateway():
    element = NetworkSelectionElement.from_dict({"name": "foobar"})
    assert element.name == "foobar"
    assert element.gateway_request is None
    assert element.cni_args is None


def test_selection_element_empty_gateway():
    element = NetworkSelectionElement.from_dict({"name": "foobar", "default-route": []})
    assert element.gateway_request == []


def test_selection_element_dual_gateway():
    element = NetworkSelectionElement.from_dict(
        {"name": "foobar", "default-route": ["10.1.1.1", "fc00::1"]}
    )
    assert element.gateway_request == [
        ipaddress.ip_address("10.1.1.1"),
        ipaddress.ip_address("fc00::1"),
    ]


@pytest.mark.parametrize("route", ["not-an-ip", 5, "fe80::1%eth0"])
def test_selection_element_invalid_gateway(route):
    with pytest.raises(ConfigError):
        NetworkSelectionElement.from_dict({"name": "foobar", "default-route": [route]})


def test_selection_element_fields():
    element = NetworkSelectionElement.from_dict(
        {
            "name": "testname",
            "namespace": "ns1",
            "ips": ["10.0.0.1/24"],
            "mac": "02:00:00:00:00:01",
            "interface": "testIF1",
            "bandwidth": {"ingressRate": 100},
            "portMappings": [{"hostPort": 8080, "containerPort": 80}],
            "deviceID": "0000:00:00.0",
            "cni-args": {"args1": "val1"},
        }
    )
    assert element.namespace == "ns1"
    assert element.ip_request == ["10.0.0.1/24"]
    assert element.mac_request == "02:00:00:00:00:01"
    assert element.interface_request == "testIF1"
    assert element.bandwidth_request.ingress_rate == 100
    assert element.port_mappings_request == [PortMapEntry(8080, 80)]
    assert element.device_id == "0000:00:00.0"
    assert element.cni_args == {"args1": "val1"}


def test_selection_element_rejects_non_object_cni_args():
    with pytest.raises(ConfigError):
        NetworkSelectionElement.from_dict({"name": "a", "cni-args": ["x"]})


def test_controller_net_conf_from_dict():
    conf = ControllerNetConf.from_dict(
        {
            "confDir": "/etc/cni/net.d",
            "logToStderr": True,
            "metricsPort": 9091,
            "socketDir": "/run/sock/",
        }
    )
    assert conf.conf_dir == "/etc/cni/net.d"
    assert conf.log_to_stderr is True
    assert conf.metrics_port == 9091
    assert conf.multus_socket_dir == "/run/sock/"
    assert conf.bin_dir == ""


def test_controller_net_conf_without_metrics_port():
    assert ControllerNetConf.from_dict({}).metrics_port is None


def test_add_delegates_appends_in_order():
    conf = NetConf()
    first = DelegateNetConf(name="a")
    conf.add_delegates([first])
    conf.add_delegates([DelegateNetConf(name="b"), DelegateNetConf(name="c")])
    assert [d.name for d in conf.delegates] == ["a", "b", "c"]
    assert conf.delegates[0] is first