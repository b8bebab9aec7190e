import json

import pytest

from multuscfg.inject import (
    add_cni_args_in_conf_list,
    add_cni_args_in_config,
    add_device_id,
    add_device_id_in_conf_list,
    inject_cni_args,
)
from multuscfg.types import ConfigError

BAD_JSON = b"""{
  "name": "node-cni-network",
  "type": "multus",
  "delegates": [{
      "type": "weave-net"
  }],
"runtimeConfig": {
    "portMappings": [
      {"hostPort": 8080, "containerPort": 80, "protocol": "tcp"}
    ]
	}"""


def test_bad_json_is_rejected():
    with pytest.raises(ConfigError):
        add_device_id_in_conf_list(BAD_JSON, "")
    with pytest.raises(ConfigError):
        add_device_id(BAD_JSON, "")


def test_non_object_is_rejected():
    with pytest.raises(ConfigError):
        add_device_id(b"[1, 2]", "0000:00:00.0")


def test_device_id_in_conf():
    conf = b'{"name": "second-network", "type": "sriov"}'
    result = json.loads(add_device_id(conf, "0000:00:00.0"))
    assert result["deviceID"] == "0000:00:00.0"
    assert result["name"] == "second-network"


def test_pci_bus_id_in_conf():
    conf = '{"name": "second-network", "type": "host-device"}'
    result = json.loads(add_device_id(conf, "0000:00:00.2"))
    assert result["pciBusID"] == "0000:00:00.2"


def test_output_is_compact_with_sorted_keys():
    assert add_device_id(b'{"b": 1, "a": 2}', "x") == b'{"a":2,"b":1,"deviceID":"x","pciBusID":"x"}'


def test_output_escapes_html_characters():
    assert add_device_id(b'{"a": "<&>"}', "x") == (
        b'{"a":"\\u003c\\u0026\\u003e","deviceID":"x","pciBusID":"x"}'
    )


def test_device_id_in_conf_list():
    conf = b'{"name": "second-network", "plugins": [{"type": "sriov"}]}'
    result = json.loads(add_device_id_in_conf_list(conf, "0000:00:00.1"))
    assert result["plugins"][0]["deviceID"] == "0000:00:00.1"
    assert result["plugins"][0]["pciBusID"] == "0000:00:00.1"


def test_device_id_in_conf_list_multiple_plugins():
    conf = b'{"name": "second-network", "plugins": [{"type": "sriov"}, {"type": "other-cni"}]}'
    result = json.loads(add_device_id_in_conf_list(conf, "0000:00:00.3"))
    assert [p["deviceID"] for p in result["plugins"]] == ["0000:00:00.3"] * 2
    assert [p["pciBusID"] for p in result["plugins"]] == ["0000:00:00.3"] * 2
    assert [p["type"] for p in result["plugins"]] == ["sriov", "other-cni"]


@pytest.mark.parametrize(
    "conf",
    [
        b'{"name": "n"}',
        b'{"name": "n", "plugins": {"type": "x"}}',
        b'{"name": "n", "plugins": ["x"]}',
    ],
)
def test_device_id_in_conf_list_bad_plugins(conf):
    with pytest.raises(ConfigError):
        add_device_id_in_conf_list(conf, "0000:00:00.1")


def test_inject_creates_args_section():
    config = {"type": "bridge"}
    inject_cni_args(config, {"args1": "val1"})
    assert config == {"type": "bridge", "args": {"cni": {"args1": "val1"}}}


def test_inject_adds_cni_to_existing_args():
    config = {"args": {"other": 1}}
    inject_cni_args(config, {"args1": "val1"})
    assert config == {"args": {"other": 1, "cni": {"args1": "val1"}}}


def test_inject_merges_into_existing_cni():
    config = {"args": {"cni": {"args0": "val0", "args1": "val1"}}}
    inject_cni_args(config, {"args1": "val1a"})
    assert config["args"]["cni"] == {"args0": "val0", "args1": "val1a"}


def test_inject_does_not_share_args_dict():
    args = {"args1": "val1"}
    config = {}
    inject_cni_args(config, args)
    args["args2"] = "val2"
    assert config["args"]["cni"] == {"args1": "val1"}


@pytest.mark.parametrize("config", [{"args": None}, {"args": {"cni": "x"}}])
def test_inject_rejects_malformed_args(config):
    with pytest.raises(ConfigError):
        inject_cni_args(config, {"a": "b"})


def test_inject_rejects_non_dict_args():
    with pytest.raises(ConfigError):
        inject_cni_args({}, ["a"])


def test_cni_args_in_config():
    conf = b'{"name": "second-network", "type": "bridge"}'
    result = json.loads(add_cni_args_in_config(conf, {"args1": "val1"}))
    assert result["args"]["cni"]["args1"] == "val1"


def test_cni_args_in_config_merge():
    conf = b"""{
    "name": "second-network",
    "type": "bridge",
    "args": {"cni": {"args0": "val0", "args1": "val1"}}
}"""
    result = json.loads(add_cni_args_in_config(conf, {"args1": "val1a"}))
    assert result["args"]["cni"]["args0"] == "val0"
    assert result["args"]["cni"]["args1"] == "val1a"


def test_cni_args_in_config_bad_json():
    with pytest.raises(ConfigError):
        add_cni_args_in_config(BAD_JSON, {"a": "b"})


def test_cni_args_in_conf_list():
    conf = b'{"name": "second-network", "plugins": [{"type": "bridge"}]}'
    result = json.loads(add_cni_args_in_conf_list(conf, {"args1": "val1"}))
    assert result["plugins"][0]["args"]["cni"]["args1"] == "val1"
    assert result["name"] == "second-network"


def test_cni_args_in_conf_list_every_plugin():
    conf = b'{"name": "n", "plugins": [{"type": "a"}, {"type": "b", "args": {"cni": {"x": 1}}}]}'
    result = json.loads(add_cni_args_in_conf_list(conf, {"y": 2}))
    assert result["plugins"][0]["args"]["cni"] == {"y": 2}
    assert result["plugins"][1]["args"]["cni"] == {"x": 1, "y": 2}


def test_cni_args_in_conf_list_missing_plugins():
    with pytest.raises(ConfigError):
        add_cni_args_in_conf_list(b'{"name": "n", "type": "bridge"}', {"a": "b"})