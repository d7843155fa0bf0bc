"""Multus and multi-network policy settings."""

from __future__ import annotations

from collections.abc import Callable

from clusternet.types import NetworkSpec

SYSTEM_CNI_CONF_DIR = "/etc/kubernetes/cni/net.d"
MULTUS_CNI_CONF_DIR = "/var/run/multus/cni/net.d"
CNI_BIN_DIR = "/var/lib/cni/bin"

# Checks that a multi-network policy change must pass, each paired with the
# message reported when it fails. At present every change is safe to deploy.
_UNSAFE_MULTI_NETWORK_POLICY_CHANGES: tuple[
    tuple[Callable[[NetworkSpec, NetworkSpec], bool], str], ...
] = ()


def plugin_cni_conf_dir(conf: NetworkSpec) -> str:
    """Directory where the default plugin installs its CNI configuration.

    Multus reads its own directory unless multi-network is disabled.
    """
    if conf.disable_multi_network:
        return SYSTEM_CNI_CONF_DIR
    return MULTUS_CNI_CONF_DIR


def is_multi_network_policy_change_safe(prev: NetworkSpec, next: NetworkSpec) -> list[str]:
    """Return the reasons a multi-network policy change is unsafe."""
    return [
        message
        for is_unsafe, message in _UNSAFE_MULTI_NETWORK_POLICY_CHANGES
        if is_unsafe(prev, next)
    ]