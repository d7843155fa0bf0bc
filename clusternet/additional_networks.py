"""Validation and CNI IPAM settings for additional pod networks."""

from __future__ import annotations

import json
from typing import Any

from clusternet.netutil import parse_cidr, parse_ip
from clusternet.types import (
    IPAM_TYPE_DHCP,
    IPAM_TYPE_STATIC,
    MACVLAN_MODE_BRIDGE,
    MACVLAN_MODE_PASSTHRU,
    MACVLAN_MODE_PRIVATE,
    MACVLAN_MODE_VEPA,
    AdditionalNetworkDefinition,
    IPAMConfig,
    StaticIPAMConfig,
)

DHCP_IPAM_CONFIG_JSON = '{ "type": "dhcp" }'

_MACVLAN_MODES = frozenset(
    {MACVLAN_MODE_BRIDGE, MACVLAN_MODE_PRIVATE, MACVLAN_MODE_VEPA, MACVLAN_MODE_PASSTHRU}
)

_NAME_MISSING = "Additional Network Name cannot be nil"


class IPAMConfigError(ValueError):
    """The IPAM configuration cannot be turned into CNI JSON."""


def _dump_json(value: Any) -> str:
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return text.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")


def validate_raw(conf: AdditionalNetworkDefinition) -> list[str]:
    """Check the name and the raw CNI config of an additional network."""
    errors: list[str] = []
    if not conf.name:
        errors.append(_NAME_MISSING)
    try:
        parsed = json.loads(conf.raw_cni_config)
    except ValueError:
        parsed = ...
    if parsed is not None and not isinstance(parsed, dict):
        errors.append(f"Failed to Unmarshal RawCNIConfig: {conf.raw_cni_config!r}")
    return errors


def get_static_ipam_config_json(conf: StaticIPAMConfig | None) -> str:
    """Build the CNI JSON for static IPAM.

    Without addresses the IPs are expected at runtime, so the "ips"
    capability is requested instead.
    """
    config: dict[str, Any] = {"type": "static"}
    if conf is None:
        config["capabilities"] = ["ips"]
        return _dump_json(config)

    routes = []
    for route in conf.routes:
        try:
            destination = parse_cidr(route.destination)
        except ValueError as exc:
            raise IPAMConfigError(f"failed to parse macvlan route: {exc}") from exc
        entry: dict[str, Any] = {"dst": str(destination)}
        gateway = parse_ip(route.gateway)
        if gateway is not None:
            entry["gw"] = str(gateway)
        routes.append(entry)
    if routes:
        config["routes"] = routes

    addresses = []
    for address in conf.addresses:
        entry = {"address": address.address}
        gateway = parse_ip(address.gateway)
        if gateway is not None:
            entry["gateway"] = str(gateway)
        addresses.append(entry)
    if addresses:
        config["addresses"] = addresses

    if conf.dns is not None:
        dns: dict[str, Any] = {}
        if conf.dns.nameservers:
            dns["nameservers"] = list(conf.dns.nameservers)
        if conf.dns.domain:
            dns["domain"] = conf.dns.domain
        if conf.dns.search:
            dns["search"] = list(conf.dns.search)
        config["dns"] = dns

    if not conf.addresses:
        config["capabilities"] = ["ips"]
    return _dump_json(config)


def get_ipam_config_json(conf: IPAMConfig | None) -> str:
    """Build the CNI JSON for an IPAM configuration; DHCP is the default."""
    if conf is None or conf.type == IPAM_TYPE_DHCP:
        return DHCP_IPAM_CONFIG_JSON
    if conf.type == IPAM_TYPE_STATIC:
        return get_static_ipam_config_json(conf.static_ipam_config)
    raise IPAMConfigError("failed to render IPAM JSON")


def validate_static_ipam_config(conf: StaticIPAMConfig) -> list[str]:
    """Check the addresses and routes of a static IPAM configuration."""
    errors: list[str] = []
    for address in conf.addresses:
        try:
            parse_cidr(address.address)
        except ValueError as exc:
            errors.append(f"invalid static address: {exc}")
        if address.gateway and parse_ip(address.gateway) is None:
            errors.append(f"invalid gateway: {address.gateway}")
    for route in conf.routes:
        try:
            parse_cidr(route.destination)
        except ValueError as exc:
            errors.append(f"invalid route destination: {exc}")
        if route.gateway and parse_ip(route.gateway) is None:
            errors.append(f"invalid gateway: {route.gateway}")
    return errors


def validate_ipam_config(conf: IPAMConfig) -> list[str]:
    """Check an IPAM configuration."""
    if conf.type == IPAM_TYPE_STATIC:
        if conf.static_ipam_config is not None:
            return validate_static_ipam_config(conf.static_ipam_config)
        return []
    if conf.type == IPAM_TYPE_DHCP:
        return []
    return [f"invalid IPAM type: {conf.type}"]


def validate_simple_macvlan_config(conf: AdditionalNetworkDefinition) -> list[str]:
    """Check the name and macvlan settings of an additional network."""
    errors: list[str] = []
    if not conf.name:
        errors.append(_NAME_MISSING)

    macvlan = conf.simple_macvlan_config
    if macvlan is not None:
        if macvlan.ipam_config is not None:
            errors.extend(validate_ipam_config(macvlan.ipam_config))
        if macvlan.mode and macvlan.mode not in _MACVLAN_MODES:
            errors.append(f"invalid Macvlan mode: {macvlan.mode}")
    return errors