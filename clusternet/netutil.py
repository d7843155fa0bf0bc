"""IP address and network helpers."""

from __future__ import annotations

import ipaddress
from collections.abc import Iterator

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network
IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


def parse_cidr(text: str) -> IPNetwork:
    """Parse an address/prefix string into the network it belongs to.

    Raises ValueError when the text is not in CIDR form.
    """
    address, sep, prefix = text.partition("/")
    if not sep or not prefix.isdigit() or "%" in address:
        raise ValueError(f"invalid CIDR address: {text}")
    try:
        return ipaddress.ip_network(text, strict=False)
    except ValueError as exc:
        raise ValueError(f"invalid CIDR address: {text}") from exc


def parse_ip(text: str) -> IPAddress | None:
    """Parse an IP address, returning None when the text is not one."""
    if "%" in text:
        return None
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


def expand_net(net: IPNetwork) -> IPNetwork:
    """Return the network twice the size of *net* that contains it."""
    return net.supernet(prefixlen_diff=1)


def nets_overlap(a: IPNetwork, b: IPNetwork) -> bool:
    """Tell whether two networks share any address."""
    return a.version == b.version and a.overlaps(b)


def net_includes(outer: IPNetwork, inner: IPNetwork) -> bool:
    """Tell whether *inner* lies entirely within *outer*."""
    return outer.version == inner.version and inner.subnet_of(outer)


class IPPool:
    """A set of networks that must not overlap one another."""

    def __init__(self) -> None:
        self._networks: list[IPNetwork] = []

    def add(self, cidr: IPNetwork | str) -> None:
        """Add a network, raising ValueError if it overlaps one already held."""
        if isinstance(cidr, str):
            cidr = parse_cidr(cidr)
        for existing in self._networks:
            if nets_overlap(existing, cidr):
                raise ValueError(f"CIDRs {existing} and {cidr} overlap")
        self._networks.append(cidr)

    def __iter__(self) -> Iterator[IPNetwork]:
        return iter(self._networks)

    def __len__(self) -> int:
        return len(self._networks)