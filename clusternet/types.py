"""Configuration and status objects for the cluster network."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

NETWORK_TYPE_OPENSHIFT_SDN = "OpenShiftSDN"
NETWORK_TYPE_OVN_KUBERNETES = "OVNKubernetes"
NETWORK_TYPE_KURYR = "Kuryr"
NETWORK_TYPE_RAW = "Raw"
NETWORK_TYPE_SIMPLE_MACVLAN = "SimpleMacvlan"

IPAM_TYPE_DHCP = "DHCP"
IPAM_TYPE_STATIC = "Static"

MACVLAN_MODE_BRIDGE = "Bridge"
MACVLAN_MODE_PRIVATE = "Private"
MACVLAN_MODE_VEPA = "VEPA"
MACVLAN_MODE_PASSTHRU = "Passthru"

SDN_MODE_SUBNET = "Subnet"
SDN_MODE_MULTITENANT = "Multitenant"
SDN_MODE_NETWORK_POLICY = "NetworkPolicy"

LOG_LEVEL_NORMAL = "Normal"


@dataclass
class ClusterNetworkEntry:
    """A pod network block and the prefix length handed to each node."""

    cidr: str
    host_prefix: int = 0


@dataclass
class ProxyConfig:
    """Settings for kube-proxy."""

    bind_address: str = ""
    iptables_sync_period: str = ""
    proxy_arguments: dict[str, list[str]] | None = None


@dataclass
class OpenShiftSDNConfig:
    """Settings specific to the openshift-sdn plugin."""

    mode: str = ""
    vxlan_port: int | None = None
    mtu: int | None = None
    enable_unidling: bool | None = None


@dataclass
class KuryrConfig:
    """Settings specific to the Kuryr plugin."""

    daemon_probes_port: int | None = None
    controller_probes_port: int | None = None
    openstack_service_network: str = ""
    enable_port_pools_prepopulation: bool = False
    pool_max_ports: int = 0
    pool_min_ports: int = 0
    pool_batch_ports: int | None = None
    mtu: int | None = None


@dataclass
class DefaultNetworkDefinition:
    """The default pod network and its plugin-specific settings.

    OVN-Kubernetes settings are kept as a raw mapping (for instance {"mtu": 1400}).
    """

    type: str = ""
    openshift_sdn_config: OpenShiftSDNConfig | None = None
    ovn_kubernetes_config: dict[str, Any] | None = None
    kuryr_config: KuryrConfig | None = None


@dataclass
class StaticIPAMAddress:
    """A statically assigned address in CIDR form, with an optional gateway."""

    address: str
    gateway: str = ""


@dataclass
class StaticIPAMRoute:
    """A static route: a destination CIDR and an optional gateway."""

    destination: str
    gateway: str = ""


@dataclass
class StaticIPAMDNS:
    """DNS settings for static IPAM."""

    nameservers: list[str] = field(default_factory=list)
    domain: str = ""
    search: list[str] = field(default_factory=list)


@dataclass
class StaticIPAMConfig:
    """Addresses, routes and DNS for static IPAM."""

    addresses: list[StaticIPAMAddress] = field(default_factory=list)
    routes: list[StaticIPAMRoute] = field(default_factory=list)
    dns: StaticIPAMDNS | None = None


@dataclass
class IPAMConfig:
    """IP address management for an additional network."""

    type: str = ""
    static_ipam_config: StaticIPAMConfig | None = None


@dataclass
class SimpleMacvlanConfig:
    """Settings for a macvlan additional network."""

    master: str = ""
    ipam_config: IPAMConfig | None = None
    mode: str = ""
    mtu: int = 0


@dataclass
class AdditionalNetworkDefinition:
    """An extra network attached to pods besides the default one."""

    type: str = ""
    name: str = ""
    namespace: str = ""
    raw_cni_config: str = ""
    simple_macvlan_config: SimpleMacvlanConfig | None = None


@dataclass
class MTUMigrationValues:
    """The MTU before and after a migration."""

    from_: int | None = None
    to: int | None = None


@dataclass
class MTUMigration:
    """MTU changes for the pod network and for the machines."""

    network: MTUMigrationValues | None = None
    machine: MTUMigrationValues | None = None


@dataclass
class NetworkMigration:
    """A network migration in progress."""

    network_type: str = ""
    mtu: MTUMigration | None = None


@dataclass
class NetworkSpec:
    """The operator's network configuration."""

    management_state: str = ""
    cluster_network: list[ClusterNetworkEntry] = field(default_factory=list)
    service_network: list[str] = field(default_factory=list)
    default_network: DefaultNetworkDefinition = field(default_factory=DefaultNetworkDefinition)
    additional_networks: list[AdditionalNetworkDefinition] = field(default_factory=list)
    disable_multi_network: bool | None = None
    use_multi_network_policy: bool | None = None
    deploy_kube_proxy: bool | None = None
    kube_proxy_config: ProxyConfig | None = None
    log_level: str = ""
    migration: NetworkMigration | None = None


@dataclass
class ClusterNetworkSpec:
    """The cluster-wide network configuration supplied by the user."""

    cluster_network: list[ClusterNetworkEntry] = field(default_factory=list)
    service_network: list[str] = field(default_factory=list)
    network_type: str = ""


@dataclass
class NetworkStatus:
    """The cluster-wide network status."""

    cluster_network: list[ClusterNetworkEntry] = field(default_factory=list)
    service_network: list[str] = field(default_factory=list)
    network_type: str = ""
    cluster_network_mtu: int = 0
    migration: NetworkMigration | None = None