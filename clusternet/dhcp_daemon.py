"""Decide whether the DHCP CNI daemon has to be deployed."""

from __future__ import annotations

import json
import logging

from clusternet.types import (
    IPAM_TYPE_DHCP,
    NETWORK_TYPE_RAW,
    NETWORK_TYPE_SIMPLE_MACVLAN,
    AdditionalNetworkDefinition,
    NetworkSpec,
    SimpleMacvlanConfig,
)

log = logging.getLogger(__name__)


def use_dhcp_raw(addnet: AdditionalNetworkDefinition) -> bool:
    """Tell whether a raw CNI config uses DHCP for IPAM."""
    try:
        raw_config = json.loads(addnet.raw_cni_config)
    except ValueError:
        log.warning(
            "Not rendering DHCP daemonset, failed to parse RawCNIConfig: %r", addnet.raw_cni_config
        )
        return False
    if raw_config is None:
        return False
    if not isinstance(raw_config, dict):
        log.warning(
            "Not rendering DHCP daemonset, RawCNIConfig is not an object: %r", addnet.raw_cni_config
        )
        return False

    ipam = raw_config.get("ipam")
    if ipam is None:
        return False
    if not isinstance(ipam, dict):
        log.warning("IPAM element has data of type %s but wanted an object", type(ipam).__name__)
        return False
    if "type" not in ipam:
        return False
    ipam_type = ipam["type"]
    if not isinstance(ipam_type, str):
        log.warning("IPAM type element has data of type %s but wanted string", type(ipam_type).__name__)
        return False
    return ipam_type == "dhcp"


def use_dhcp_simple_macvlan(conf: SimpleMacvlanConfig | None) -> bool:
    """Tell whether a macvlan network uses DHCP; DHCP is the default IPAM."""
    if conf is None or conf.ipam_config is None:
        return True
    return conf.ipam_config.type == IPAM_TYPE_DHCP


def _network_uses_dhcp(addnet: AdditionalNetworkDefinition) -> bool:
    if addnet.type == NETWORK_TYPE_RAW:
        return use_dhcp_raw(addnet)
    if addnet.type == NETWORK_TYPE_SIMPLE_MACVLAN:
        return use_dhcp_simple_macvlan(addnet.simple_macvlan_config)
    return False


def use_dhcp(conf: NetworkSpec) -> bool:
    """Tell whether any additional network needs the DHCP daemon."""
    # Additional networks only exist with multi-network enabled.
    if conf.disable_multi_network:
        return False
    return any(_network_uses_dhcp(addnet) for addnet in conf.additional_networks)