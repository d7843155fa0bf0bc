"""Validation, change checks and defaulting for the openshift-sdn network plugin."""

from __future__ import annotations

from typing import Any

import yaml

from clusternet.kube_proxy import no_kube_proxy_config
from clusternet.netutil import parse_cidr
from clusternet.types import (
    NETWORK_TYPE_OPENSHIFT_SDN,
    SDN_MODE_MULTITENANT,
    SDN_MODE_NETWORK_POLICY,
    SDN_MODE_SUBNET,
    NetworkSpec,
    OpenShiftSDNConfig,
    ProxyConfig,
)

DEFAULT_VXLAN_PORT = 4789
# Size of the VXLAN header that every pod packet carries.
SDN_OVERHEAD = 50

CLUSTER_NETWORK_DEFAULT = "default"

_MIN_MTU = 576
_MAX_MTU = 65536

_PLUGIN_NAMES = {
    SDN_MODE_SUBNET: "redhat/openshift-ovs-subnet",
    SDN_MODE_MULTITENANT: "redhat/openshift-ovs-multitenant",
    SDN_MODE_NETWORK_POLICY: "redhat/openshift-ovs-networkpolicy",
}


def sdn_plugin_name(mode: str) -> str:
    """Return the plugin name for an openshift-sdn mode, or "" for an unknown mode."""
    return _PLUGIN_NAMES.get(mode, "")


def validate_openshift_sdn(conf: NetworkSpec) -> list[str]:
    """Check that the openshift-sdn configuration is sane; return the problems found."""
    errors: list[str] = []

    if not conf.cluster_network:
        errors.append("ClusterNetwork cannot be empty")
    if len(conf.service_network) != 1:
        errors.append("ServiceNetwork must have exactly 1 entry")

    sc = conf.default_network.openshift_sdn_config
    if sc is not None:
        if sc.mode and not sdn_plugin_name(sc.mode):
            errors.append(f'invalid openshift-sdn mode "{sc.mode}"')
        if sc.vxlan_port is not None and not 1 <= sc.vxlan_port <= 65535:
            errors.append(f"invalid VXLANPort {sc.vxlan_port}")
        if sc.mtu is not None and not _MIN_MTU <= sc.mtu <= _MAX_MTU:
            errors.append(f"invalid MTU {sc.mtu}")

        # Unidling only works with the iptables proxy mode.
        unidling = sc.enable_unidling is None or sc.enable_unidling
        proxy = conf.kube_proxy_config
        arguments = proxy.proxy_arguments if proxy is not None else None
        proxy_mode = (arguments or {}).get("proxy-mode")
        if unidling and proxy_mode and proxy_mode[0] != "iptables":
            errors.append(
                'invalid proxy-mode - when unidling is enabled, proxy-mode must be "iptables"'
            )

    if conf.deploy_kube_proxy:
        # An external kube-proxy is tolerated only in narrow testing setups;
        # the message deliberately does not mention them.
        if (
            sc is None
            or sc.enable_unidling is None
            or sc.enable_unidling
            or not no_kube_proxy_config(conf)
        ):
            errors.append("openshift-sdn does not support 'deployKubeProxy: true'")

    return errors


def _check_mtu_migration(prev: NetworkSpec, next: NetworkSpec, pn: OpenShiftSDNConfig) -> list[str]:
    errors: list[str] = []
    mtu = next.migration.mtu
    net, machine = mtu.network, mtu.machine
    if (
        net is None
        or machine is None
        or net.from_ is None
        or net.to is None
        or machine.to is None
    ):
        errors.append("invalid Migration.MTU, at least one of the required fields is missing")
        return errors

    # The starting MTU is only checked when it changes.
    prev_net = (
        prev.migration.mtu.network
        if prev.migration is not None and prev.migration.mtu is not None
        else None
    )
    check_prev = prev_net is None or prev_net.from_ != net.from_
    if check_prev and net.from_ != pn.mtu:
        errors.append(
            f"invalid Migration.MTU.Network.From({net.from_}) not equal to the "
            f"currently applied MTU({pn.mtu})"
        )
    if net.to + SDN_OVERHEAD > machine.to:
        errors.append(
            f"invalid Migration.MTU.Machine.To({machine.to}), has to be at least "
            f"{net.to + SDN_OVERHEAD}"
        )
    return errors


def is_openshift_sdn_change_safe(prev: NetworkSpec, next: NetworkSpec) -> list[str]:
    """Return why an openshift-sdn change is unsafe.

    Defaults must already be filled in. Only unidling may change freely;
    the MTU may change through a migration.
    """
    pn = prev.default_network.openshift_sdn_config or OpenShiftSDNConfig()
    nn = next.default_network.openshift_sdn_config or OpenShiftSDNConfig()
    errors: list[str] = []

    if pn == nn and prev.migration == next.migration:
        return errors

    if pn.mode != nn.mode:
        errors.append("cannot change openshift-sdn mode")
    if pn.vxlan_port != nn.vxlan_port:
        errors.append("cannot change openshift-sdn vxlanPort")

    if next.migration is not None and next.migration.mtu is not None:
        errors.extend(_check_mtu_migration(prev, next, pn))
    elif pn.mtu != nn.mtu:
        errors.append("cannot change openshift-sdn mtu without migration")

    return errors


def fill_openshift_sdn_defaults(
    conf: NetworkSpec, previous: NetworkSpec | None, host_mtu: int
) -> None:
    """Fill in openshift-sdn defaults, in place.

    The MTU is taken from *previous* when it ran openshift-sdn, otherwise it
    is the host MTU less the VXLAN overhead.
    """
    if conf.deploy_kube_proxy is None:
        conf.deploy_kube_proxy = False

    if conf.kube_proxy_config is None:
        conf.kube_proxy_config = ProxyConfig()
    if not conf.kube_proxy_config.bind_address:
        conf.kube_proxy_config.bind_address = "0.0.0.0"
    if conf.kube_proxy_config.proxy_arguments is None:
        conf.kube_proxy_config.proxy_arguments = {}

    if conf.default_network.openshift_sdn_config is None:
        conf.default_network.openshift_sdn_config = OpenShiftSDNConfig()
    sc = conf.default_network.openshift_sdn_config

    if sc.vxlan_port is None:
        sc.vxlan_port = DEFAULT_VXLAN_PORT
    if sc.enable_unidling is None:
        sc.enable_unidling = True

    if sc.mtu is None:
        mtu = host_mtu - SDN_OVERHEAD
        if previous is not None and previous.default_network.type == NETWORK_TYPE_OPENSHIFT_SDN:
            prev_sc = previous.default_network.openshift_sdn_config
            if prev_sc is not None and prev_sc.mtu is not None:
                mtu = prev_sc.mtu
        sc.mtu = mtu

    if not sc.mode:
        sc.mode = SDN_MODE_NETWORK_POLICY


def cluster_network(conf: NetworkSpec) -> str:
    """Build the YAML of the ClusterNetwork object shared by controller and nodes.

    Raises ValueError if a cluster network cannot be parsed or either the
    cluster or the service network is empty.
    """
    sc = conf.default_network.openshift_sdn_config or OpenShiftSDNConfig()

    networks: list[dict[str, Any]] = []
    for entry in conf.cluster_network:
        cidr = parse_cidr(entry.cidr)
        networks.append(
            {"CIDR": entry.cidr, "hostSubnetLength": cidr.max_prefixlen - entry.host_prefix}
        )
    if not networks:
        raise ValueError("cluster network must have at least 1 entry")
    if not conf.service_network:
        raise ValueError("service network must have at least 1 entry")

    doc: dict[str, Any] = {
        "apiVersion": "network.openshift.io/v1",
        "kind": "ClusterNetwork",
        "metadata": {"creationTimestamp": None, "name": CLUSTER_NETWORK_DEFAULT},
        "clusterNetworks": networks,
        "serviceNetwork": conf.service_network[0],
    }
    plugin = sdn_plugin_name(sc.mode)
    if plugin:
        doc["pluginName"] = plugin
    if networks[0]["CIDR"]:
        doc["network"] = networks[0]["CIDR"]
    if networks[0]["hostSubnetLength"]:
        doc["hostsubnetlength"] = networks[0]["hostSubnetLength"]
    if sc.vxlan_port is not None:
        doc["vxlanPort"] = sc.vxlan_port
    if sc.mtu is not None:
        doc["mtu"] = sc.mtu

    return yaml.safe_dump(doc, default_flow_style=False, sort_keys=True)