# multuscfg

Configuration handling for a meta CNI plugin that attaches several networks
to a pod. The package parses the plugin's JSON configuration, turns each
delegate network into a `DelegateNetConf`, applies per-network requests from
a network selection element, and builds the runtime configuration handed to
each delegate plugin.

It has no runtime dependencies beyond the standard library.

## Installation

```
pip install .
```

For the test suite:

```
pip install .[test]
pytest
```

## Modules

- `multuscfg.types`: the data classes (`NetConf`, `DelegateNetConf`,
  `NetworkSelectionElement`, `RuntimeConfig`, `PortMapEntry`,
  `BandwidthEntry`, `LogOptions`, `PluginConf`, `PluginConfList`,
  `K8sArgs`, `ResourceInfo`, `ControllerNetConf`) and `ConfigError`, the
  exception raised for every invalid configuration.
- `multuscfg.inject`: edits to raw delegate JSON (`add_device_id`,
  `add_device_id_in_conf_list`, `inject_cni_args`, `add_cni_args_in_config`,
  `add_cni_args_in_conf_list`).
- `multuscfg.delegate`: `load_delegate_net_conf`,
  `load_delegate_net_conf_list`, `check_gateway_config`,
  `check_system_namespaces`.
- `multuscfg.runtime`: `CmdArgs`, `RuntimeConf` and the functions that build
  the runtime configuration for a delegate.
- `multuscfg.netconf`: `get_default_net_conf`, `load_net_conf`,
  `load_daemon_net_conf`.

## Loading a configuration

```python
from multuscfg.netconf import load_net_conf

conf = load_net_conf(b'''{
    "name": "node-cni-network",
    "type": "multus",
    "delegates": [{"type": "weave-net"}, {"type": "foobar"}]
}''')

print(conf.delegates[0].conf.type)      # weave-net
print(conf.delegates[0].master_plugin)  # True
print(conf.non_isolated_namespaces)     # ['default']
```

The first delegate is always marked as the master plugin. A comma separated
`globalNamespaces` value replaces the non-isolated namespaces, with
whitespace stripped from each entry. A `prevResult` section is kept as a
plain dictionary in `prev_result`. A configuration with neither delegates
nor a cluster network, a delegate without a `type` or `plugins`, or
malformed JSON raises `multuscfg.types.ConfigError`.

`load_daemon_net_conf(path)` reads the daemon configuration file and returns
the parsed `ControllerNetConf` together with the raw bytes. Unset CNI,
configuration and binary directories and the socket directory fall back to
their defaults; an unreadable or invalid file raises `ConfigError`.

## Delegates and selection elements

```python
from multuscfg.delegate import load_delegate_net_conf, check_gateway_config
from multuscfg.types import NetworkSelectionElement

element = NetworkSelectionElement.from_dict(
    {"name": "foobar", "default-route": ["10.1.1.1"]}
)
delegate = load_delegate_net_conf(
    b'{"name": "weave1", "type": "weave-net"}', element, "", ""
)
check_gateway_config([delegate])
print(delegate.name)                  # /foobar
print(delegate.is_filter_v4_gateway)  # False
print(delegate.is_filter_v6_gateway)  # True
```

A device ID passed to `load_delegate_net_conf` is written into the delegate
bytes (`delegate.raw`) as both `deviceID` and `pciBusID`, for a single plugin
and for every plugin of a plugin list. CNI arguments from the selection
element are merged into the `args.cni` section, overriding keys already
there. `check_gateway_config` raises `ConfigError` when more than one IPv4 or
more than one IPv6 default gateway is requested across the delegates.

## Runtime configuration

```python
from multuscfg.runtime import CmdArgs, create_cni_runtime_conf
from multuscfg.types import K8sArgs, RuntimeConfig

args = CmdArgs(container_id="123456789", netns="/var/run/netns/test", if_name="eth0")
k8s = K8sArgs(k8s_pod_name="dummy", k8s_pod_namespace="namespacedummy")
rt, device_info_file = create_cni_runtime_conf(args, k8s, "eth0", RuntimeConfig(), None)
print(rt.args[:3])
# [('IgnoreUnknown', 'true'), ('K8S_POD_NAMESPACE', 'namespacedummy'), ('K8S_POD_NAME', 'dummy')]
```

Entries of the `CNI_ARGS` environment variable (`KEY=value` separated by
`;`) fill argument slots that are still empty or are appended. Capability
arguments (`portMappings`, `bandwidth`, `ips`, `mac`, `infinibandGUID`,
`deviceID`, `CNIDeviceInfoFile`) come from the runtime configuration merged
with the delegate's requests; requests of the master plugin are not merged.
When a device ID is set, a device information file path is generated for
the delegate and returned alongside the runtime configuration.

`get_gateway_from_result` lists the gateways of the default routes in a CNI
result document.

## What this package does not do

It only loads and prepares configuration. It provides no command-line
program, does not run delegate plugins, does not talk to the Kubernetes
API, runs no daemon or socket server, and does not configure log files or
log levels from the `logFile`, `logLevel` or `logOptions` settings it parses;
messages go through the standard `logging` module.