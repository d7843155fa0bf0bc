# clusternet

Validation, defaulting and change-safety checks for the network configuration
of a Kubernetes cluster: service and cluster CIDRs, kube-proxy settings,
OpenShift SDN, Kuryr, Multus and additional (raw CNI or simple macvlan)
networks.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `clusternet.types` — dataclasses describing the configuration:
  `NetworkSpec`, `ClusterNetworkSpec`, `NetworkStatus`, `ClusterNetworkEntry`,
  `ProxyConfig`, `DefaultNetworkDefinition`, `OpenShiftSDNConfig`,
  `KuryrConfig`, `AdditionalNetworkDefinition`, `SimpleMacvlanConfig`,
  `IPAMConfig`, `StaticIPAMConfig`, `StaticIPAMAddress`, `StaticIPAMRoute`,
  `StaticIPAMDNS`, and the migration types `NetworkMigration`,
  `MTUMigration` and `MTUMigrationValues`. It also holds the string
  constants for network types, IPAM types, macvlan modes and SDN modes.
- `clusternet.netutil` — `parse_cidr` (raises `ValueError`), `parse_ip`
  (returns `None` for invalid text), `expand_net` (the network twice the
  size that contains the given one), `nets_overlap`, `net_includes`, and
  `IPPool`, whose `add` raises `ValueError` when a CIDR overlaps one already
  added.
- `clusternet.cluster_config` — `validate_cluster_config` raises
  `ClusterConfigError` (a `ValueError`) for an invalid `ClusterNetworkSpec`;
  `merge_cluster_config` copies it into a `NetworkSpec` in place;
  `status_from_operator_config` builds a `NetworkStatus`, keeping fields of
  the old status when the network type is unknown.
- `clusternet.kube_proxy` — `validate_kube_proxy`,
  `fill_kube_proxy_defaults`, `accepts_kube_proxy_config`,
  `no_kube_proxy_config`, `default_deploy_kube_proxy`,
  `is_kube_proxy_change_safe`, and `parse_duration`, which reads durations
  such as `"1m30s"` into a `timedelta`.
- `clusternet.openshift_sdn` — `validate_openshift_sdn`,
  `fill_openshift_sdn_defaults`, `is_openshift_sdn_change_safe` (including
  checks on MTU migrations), `sdn_plugin_name`, and `cluster_network`, which
  produces the ClusterNetwork object as YAML.
- `clusternet.kuryr` — `validate_kuryr`, `fill_kuryr_defaults` and
  `is_kuryr_change_safe`.
- `clusternet.additional_networks` — `validate_raw`,
  `validate_simple_macvlan_config`, `validate_ipam_config`,
  `validate_static_ipam_config`, and `get_ipam_config_json` /
  `get_static_ipam_config_json`, which build the CNI IPAM JSON and raise
  `IPAMConfigError` when they cannot.
- `clusternet.dhcp_daemon` — `use_dhcp`, `use_dhcp_raw` and
  `use_dhcp_simple_macvlan` decide whether the DHCP daemon is needed.
- `clusternet.multus` — `plugin_cni_conf_dir` and
  `is_multi_network_policy_change_safe`, plus the CNI directory constants.

Validators and change-safety checks for individual plugins return a list of
error messages, empty when everything is acceptable. The `fill_*_defaults`
functions change the `NetworkSpec` they are given in place.

## Example

```python
from clusternet.cluster_config import ClusterConfigError, validate_cluster_config
from clusternet.openshift_sdn import fill_openshift_sdn_defaults, validate_openshift_sdn
from clusternet.types import (
    ClusterNetworkEntry,
    ClusterNetworkSpec,
    DefaultNetworkDefinition,
    NetworkSpec,
)

cluster = ClusterNetworkSpec(
    cluster_network=[ClusterNetworkEntry(cidr="10.128.0.0/14", host_prefix=23)],
    service_network=["172.30.0.0/16"],
    network_type="OpenShiftSDN",
)
try:
    validate_cluster_config(cluster)
except ClusterConfigError as exc:
    print(f"invalid configuration: {exc}")

spec = NetworkSpec(
    cluster_network=[ClusterNetworkEntry(cidr="10.128.0.0/14", host_prefix=23)],
    service_network=["172.30.0.0/16"],
    default_network=DefaultNetworkDefinition(type="OpenShiftSDN"),
)
errors = validate_openshift_sdn(spec)
if not errors:
    fill_openshift_sdn_defaults(spec, None, 1500)
    print(spec.default_network.openshift_sdn_config.mtu)  # 1450
```

## What it does not do

The package works on configuration objects only. It does not render
Kubernetes manifests, does not generate the kube-proxy configuration file,
does not talk to a cluster or a cloud to bootstrap resources, does not read
the host's MTU, and has no command-line tool.