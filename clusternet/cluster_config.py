"""Validation and merging of the cluster-wide network configuration."""

from __future__ import annotations

import copy

from clusternet.netutil import IPPool, parse_cidr
from clusternet.types import (
    NETWORK_TYPE_KURYR,
    NETWORK_TYPE_OPENSHIFT_SDN,
    NETWORK_TYPE_OVN_KUBERNETES,
    ClusterNetworkEntry,
    ClusterNetworkSpec,
    MTUMigration,
    NetworkMigration,
    NetworkSpec,
    NetworkStatus,
)

# Plugins that always require hostPrefix to be set.
PLUGINS_USING_HOST_PREFIX = frozenset({NETWORK_TYPE_OPENSHIFT_SDN, NETWORK_TYPE_OVN_KUBERNETES})

_KNOWN_NETWORK_TYPES = frozenset(
    {NETWORK_TYPE_OPENSHIFT_SDN, NETWORK_TYPE_OVN_KUBERNETES, NETWORK_TYPE_KURYR}
)

_FAMILY_MISMATCH = (
    "spec.clusterNetwork and spec.serviceNetwork must either both be IPv4-only, "
    "both be IPv6-only, or both be dual-stack"
)
_SERVICE_COUNT = "spec.serviceNetwork must contain at most one IPv4 and one IPv6 network"


class ClusterConfigError(ValueError):
    """The cluster network configuration is invalid."""


def _add_to_pool(pool: IPPool, cidr) -> None:
    try:
        pool.add(cidr)
    except ValueError as exc:
        raise ClusterConfigError(str(exc)) from exc


def validate_cluster_config(cluster_config: ClusterNetworkSpec) -> None:
    """Raise ClusterConfigError unless the cluster network configuration is valid."""
    pool = IPPool()
    ipv4_service = ipv6_service = ipv4_cluster = ipv6_cluster = False

    for snet in cluster_config.service_network:
        try:
            cidr = parse_cidr(snet)
        except ValueError as exc:
            raise ClusterConfigError(f"could not parse spec.serviceNetwork {snet}: {exc}") from exc
        if cidr.version == 6:
            ipv6_service = True
        else:
            ipv4_service = True
        _add_to_pool(pool, cidr)

    service_count = len(cluster_config.service_network)
    if service_count == 0:
        raise ClusterConfigError("spec.serviceNetwork must have at least 1 entry")
    if service_count > 2 or (service_count == 2 and not (ipv4_service and ipv6_service)):
        raise ClusterConfigError(_SERVICE_COUNT)

    uses_host_prefix = cluster_config.network_type in PLUGINS_USING_HOST_PREFIX
    for cnet in cluster_config.cluster_network:
        try:
            cidr = parse_cidr(cnet.cidr)
        except ValueError as exc:
            raise ClusterConfigError(f"could not parse spec.clusterNetwork {cnet.cidr}") from exc
        if cidr.version == 6:
            ipv6_cluster = True
        else:
            ipv4_cluster = True
        if uses_host_prefix or cnet.host_prefix != 0:
            ones, bits = cidr.prefixlen, cidr.max_prefixlen
            # A smaller prefix is a larger block.
            if cnet.host_prefix < ones:
                raise ClusterConfigError(
                    f"hostPrefix {cnet.host_prefix} is larger than its cidr {cnet.cidr}"
                )
            if cnet.host_prefix > bits - 2:
                raise ClusterConfigError(
                    f"hostPrefix {cnet.host_prefix} is too small, must be a /{bits - 2} or larger"
                )
        _add_to_pool(pool, cidr)

    if not cluster_config.cluster_network:
        raise ClusterConfigError("spec.clusterNetwork must have at least 1 entry")
    if ipv4_cluster != ipv4_service or ipv6_cluster != ipv6_service:
        raise ClusterConfigError(_FAMILY_MISMATCH)
    if not cluster_config.network_type:
        raise ClusterConfigError("spec.networkType is required")


def merge_cluster_config(oper_conf: NetworkSpec, cluster_conf: ClusterNetworkSpec) -> None:
    """Copy the cluster configuration into the operator configuration, in place."""
    oper_conf.service_network = list(cluster_conf.service_network)
    oper_conf.cluster_network = [
        ClusterNetworkEntry(cidr=cnet.cidr, host_prefix=cnet.host_prefix)
        for cnet in cluster_conf.cluster_network
    ]
    oper_conf.default_network.type = cluster_conf.network_type
    if not oper_conf.management_state:
        oper_conf.management_state = "Managed"


def status_from_operator_config(oper_conf: NetworkSpec, old_status: NetworkStatus) -> NetworkStatus:
    """Build the cluster network status from the applied operator configuration."""
    network_type = oper_conf.default_network.type
    known = network_type in _KNOWN_NETWORK_TYPES
    # An unknown plugin may maintain the status itself; keep what it set.
    status = NetworkStatus() if known else copy.deepcopy(old_status)

    if not old_status.network_type or known:
        status.network_type = network_type
    if not old_status.service_network or known:
        status.service_network = list(oper_conf.service_network)
    if not old_status.cluster_network or known:
        status.cluster_network = [
            ClusterNetworkEntry(cidr=cnet.cidr, host_prefix=cnet.host_prefix)
            for cnet in oper_conf.cluster_network
        ]

    default_network = oper_conf.default_network
    if network_type == NETWORK_TYPE_OPENSHIFT_SDN:
        status.cluster_network_mtu = int(default_network.openshift_sdn_config.mtu)
    elif network_type == NETWORK_TYPE_OVN_KUBERNETES:
        status.cluster_network_mtu = int(default_network.ovn_kubernetes_config["mtu"])
    elif network_type == NETWORK_TYPE_KURYR:
        status.cluster_network_mtu = int(default_network.kuryr_config.mtu)

    migration = oper_conf.migration
    if migration is not None:
        status.migration = NetworkMigration(network_type=migration.network_type)
        if migration.mtu is not None:
            status.migration.mtu = MTUMigration(
                network=copy.deepcopy(migration.mtu.network),
                machine=copy.deepcopy(migration.mtu.machine),
            )
    else:
        status.migration = None
    return status