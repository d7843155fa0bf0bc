"""Validation, change checks and defaulting for the Kuryr network plugin."""

from __future__ import annotations

from clusternet.netutil import expand_net, net_includes, nets_overlap, parse_cidr
from clusternet.types import KuryrConfig, NetworkSpec

OVN_PROVIDER = "ovn"

DEFAULT_DAEMON_PROBES_PORT = 8090
DEFAULT_CONTROLLER_PROBES_PORT = 8091
DEFAULT_POOL_MIN_PORTS = 1
DEFAULT_POOL_BATCH_PORTS = 3

_MIN_MTU = 576
_MAX_MTU = 65536


def _parse_or_none(text: str):
    try:
        return parse_cidr(text)
    except ValueError:
        return None


def _validate_pool_ports(kc: KuryrConfig) -> list[str]:
    errors: list[str] = []
    batch = kc.pool_batch_ports
    if batch is None:
        return errors
    if batch > 0:
        if kc.pool_min_ports > 0 and batch < kc.pool_min_ports:
            errors.append("poolBatchPorts cannot be set below poolMinPorts")
        if kc.pool_max_ports > 0 and batch > kc.pool_max_ports:
            errors.append("poolBatchPorts cannot be set above poolMaxPorts")
    else:
        errors.append("poolBatchPorts has to have at least value of 1")
    return errors


def validate_kuryr(conf: NetworkSpec) -> list[str]:
    """Check that the Kuryr configuration is sane; return the problems found."""
    errors: list[str] = []
    kc = conf.default_network.kuryr_config

    if len(conf.service_network) != 1:
        errors.append("serviceNetwork must have exactly 1 entry")
    if len(conf.cluster_network) != 1:
        errors.append("clusterNetwork must have exactly 1 entry")

    svc_net = _parse_or_none(conf.service_network[0]) if conf.service_network else None
    if svc_net is None:
        errors.append("cannot parse serviceNetwork[0] CIDR")

    cluster_cidr = conf.cluster_network[0].cidr if conf.cluster_network else ""
    cluster_net = _parse_or_none(cluster_cidr) if conf.cluster_network else None
    if cluster_net is None:
        errors.append("cannot parse clusterNetwork[0].CIDR CIDR")

    if kc is not None and kc.openstack_service_network:
        octavia_net = _parse_or_none(kc.openstack_service_network)
        if octavia_net is None:
            errors.append(
                "cannot parse defaultNetwork.kuryrConfig.octaviaServiceNetwork CIDR"
            )
    else:
        octavia_net = expand_net(svc_net) if svc_net is not None else None

    if kc is not None:
        errors.extend(_validate_pool_ports(kc))

    if octavia_net is not None:
        if cluster_net is not None and nets_overlap(octavia_net, cluster_net):
            errors.append(
                f"octaviaServiceNetwork {octavia_net} will overlap with "
                f"cluster network {cluster_cidr}"
            )
        if svc_net is not None:
            if not net_includes(octavia_net, svc_net):
                errors.append(
                    f"octaviaServiceNetwork {octavia_net} does not include serviceNetwork "
                    f"{svc_net} (the octaviaServiceNetwork needs to be twice the size of "
                    "serviceNetwork and include it)"
                )
            if octavia_net.prefixlen >= svc_net.prefixlen:
                errors.append(
                    f"octaviaServiceNetwork {octavia_net} is too small comparing to "
                    f"serviceNetwork {svc_net} (the octaviaServiceNetwork needs to be twice "
                    "the size of the serviceNetwork and include it)"
                )

    if kc is not None and kc.mtu is not None and not _MIN_MTU <= kc.mtu <= _MAX_MTU:
        errors.append(f"invalid MTU {kc.mtu}")

    return errors


def is_kuryr_change_safe(prev: NetworkSpec, next: NetworkSpec) -> list[str]:
    """Return why a Kuryr change is unsafe; only kuryr.conf settings may change."""
    pn = prev.default_network.kuryr_config or KuryrConfig()
    nn = next.default_network.kuryr_config or KuryrConfig()
    errors: list[str] = []
    if pn == nn:
        return errors
    if pn.openstack_service_network != nn.openstack_service_network:
        errors.append("cannot change kuryr openStackServiceNetwork")
    if pn.mtu != nn.mtu:
        errors.append("cannot change mtu for the Pods Network")
    return errors


def fill_kuryr_defaults(conf: NetworkSpec, previous: NetworkSpec | None) -> None:
    """Fill in Kuryr defaults, in place; the MTU is taken from *previous* if unset."""
    if conf.default_network.kuryr_config is None:
        conf.default_network.kuryr_config = KuryrConfig()
    kc = conf.default_network.kuryr_config

    if kc.daemon_probes_port is None:
        kc.daemon_probes_port = DEFAULT_DAEMON_PROBES_PORT
    if kc.controller_probes_port is None:
        kc.controller_probes_port = DEFAULT_CONTROLLER_PROBES_PORT

    if not kc.openstack_service_network:
        svc_net = parse_cidr(conf.service_network[0])
        kc.openstack_service_network = str(expand_net(svc_net))

    if kc.pool_min_ports == 0:
        kc.pool_min_ports = DEFAULT_POOL_MIN_PORTS
    if kc.pool_batch_ports is None:
        kc.pool_batch_ports = DEFAULT_POOL_BATCH_PORTS

    if kc.mtu is None and previous is not None:
        prev_kc = previous.default_network.kuryr_config
        if prev_kc is not None and prev_kc.mtu is not None:
            kc.mtu = prev_kc.mtu