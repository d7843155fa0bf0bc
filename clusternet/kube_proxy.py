"""Validation and defaulting of the kube-proxy configuration."""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import timedelta
from fractions import Fraction

from clusternet.netutil import parse_cidr, parse_ip
from clusternet.types import (
    NETWORK_TYPE_KURYR,
    NETWORK_TYPE_OPENSHIFT_SDN,
    NETWORK_TYPE_OVN_KUBERNETES,
    NetworkSpec,
    ProxyConfig,
)

_UNIT_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_COMPONENT = re.compile(r"(\d+\.?\d*|\.\d+)([^\d.]*)")
_MAX_NANOSECONDS = (1 << 63) - 1

# Plugins that deploy kube-proxy themselves or do without it.
_NO_STANDALONE_KUBE_PROXY = frozenset(
    {NETWORK_TYPE_OPENSHIFT_SDN, NETWORK_TYPE_OVN_KUBERNETES, NETWORK_TYPE_KURYR}
)
_REJECTS_KUBE_PROXY_CONFIG = frozenset({NETWORK_TYPE_OVN_KUBERNETES, NETWORK_TYPE_KURYR})

# Checks that a kube-proxy change must pass, each paired with the message
# reported when it fails. At present every change is safe to deploy.
_UNSAFE_KUBE_PROXY_CHANGES: tuple[
    tuple[Callable[[NetworkSpec, NetworkSpec], bool], str], ...
] = ()


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as "1m30s", "1.5h" or "-300ms".

    Valid units are ns, us (or µs), ms, s, m and h. The result has
    microsecond resolution. Raises ValueError for malformed text.
    """
    quoted = f'"{text}"'
    rest = text
    negative = False
    if rest[:1] in ("+", "-"):
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f"time: invalid duration {quoted}")

    total = Fraction(0)
    while rest:
        match = _COMPONENT.match(rest)
        if match is None:
            raise ValueError(f"time: invalid duration {quoted}")
        number, unit = match.groups()
        if not unit:
            raise ValueError(f"time: missing unit in duration {quoted}")
        if unit not in _UNIT_NANOSECONDS:
            raise ValueError(f'time: unknown unit "{unit}" in duration {quoted}')
        total += Fraction(number) * _UNIT_NANOSECONDS[unit]
        rest = rest[match.end():]

    nanoseconds = int(total)
    limit = _MAX_NANOSECONDS + 1 if negative else _MAX_NANOSECONDS
    if nanoseconds > limit:
        raise ValueError(f"time: invalid duration {quoted}")
    if negative:
        nanoseconds = -nanoseconds
    sign = -1 if nanoseconds < 0 else 1
    return timedelta(microseconds=sign * (abs(nanoseconds) // 1000))


def accepts_kube_proxy_config(conf: NetworkSpec) -> bool:
    """Tell whether the default network type allows kube-proxy options.

    OVN-Kubernetes and Kuryr do not use kube-proxy; every other type does.
    """
    return conf.default_network.type not in _REJECTS_KUBE_PROXY_CONFIG


def no_kube_proxy_config(conf: NetworkSpec) -> bool:
    """Tell whether no kube-proxy options beyond the defaults are set."""
    proxy = conf.kube_proxy_config
    if proxy is None:
        return True
    if proxy.iptables_sync_period or proxy.proxy_arguments:
        return False
    # Either no bind address or the one filled in by default.
    return proxy.bind_address in ("", "0.0.0.0", "::")


def validate_kube_proxy(conf: NetworkSpec) -> list[str]:
    """Check that the kube-proxy configuration is sane; return the problems."""
    errors: list[str] = []
    proxy = conf.kube_proxy_config
    if proxy is None:
        return errors

    if not accepts_kube_proxy_config(conf):
        if not no_kube_proxy_config(conf):
            errors.append(
                f'network type "{conf.default_network.type}" does not allow '
                "specifying kube-proxy options"
            )
        return errors

    if proxy.iptables_sync_period:
        try:
            parse_duration(proxy.iptables_sync_period)
        except ValueError as exc:
            errors.append(f"IptablesSyncPeriod is not a valid duration ({exc})")

    if proxy.bind_address and parse_ip(proxy.bind_address) is None:
        errors.append("BindAddress must be a valid IP address")

    # Ports may not be overridden, though the old defaults are tolerated.
    arguments = proxy.proxy_arguments
    if arguments is not None:
        if "metrics-port" in arguments and arguments["metrics-port"] != ["9101"]:
            errors.append("kube-proxy --metrics-port cannot be overridden")
        if "healthz-port" in arguments and arguments["healthz-port"] != ["10256"]:
            errors.append("kube-proxy --healthz-port cannot be overridden")
        if "feature-gates" in arguments:
            errors.append("kube-proxy --feature-gates cannot be overridden")

    return errors


def default_deploy_kube_proxy(conf: NetworkSpec) -> bool:
    """Tell whether a standalone kube-proxy is deployed by default for the network type."""
    return conf.default_network.type not in _NO_STANDALONE_KUBE_PROXY


def fill_kube_proxy_defaults(conf: NetworkSpec, previous: NetworkSpec | None) -> None:
    """Fill in kube-proxy defaults, in place, when kube-proxy is deployed."""
    if conf.deploy_kube_proxy is None:
        conf.deploy_kube_proxy = default_deploy_kube_proxy(conf)
    if not conf.deploy_kube_proxy:
        return

    if conf.kube_proxy_config is None:
        conf.kube_proxy_config = ProxyConfig()

    if not conf.kube_proxy_config.bind_address:
        try:
            network = parse_cidr(conf.cluster_network[0].cidr)
        except ValueError:
            return
        conf.kube_proxy_config.bind_address = "0.0.0.0" if network.version == 4 else "::"


def is_kube_proxy_change_safe(prev: NetworkSpec, next: NetworkSpec) -> list[str]:
    """Return the reasons a kube-proxy change is unsafe."""
    return [
        message
        for is_unsafe, message in _UNSAFE_KUBE_PROXY_CHANGES
        if is_unsafe(prev, next)
    ]