from datetime import timedelta

import pytest

from clusternet.kube_proxy import (
    accepts_kube_proxy_config,
    default_deploy_kube_proxy,
    fill_kube_proxy_defaults,
    is_kube_proxy_change_safe,
    no_kube_proxy_config,
    parse_duration,
    validate_kube_proxy,
)
from clusternet.types import (
    NETWORK_TYPE_KURYR,
    NETWORK_TYPE_OPENSHIFT_SDN,
    NETWORK_TYPE_OVN_KUBERNETES,
    SDN_MODE_NETWORK_POLICY,
    ClusterNetworkEntry,
    DefaultNetworkDefinition,
    NetworkSpec,
    OpenShiftSDNConfig,
    ProxyConfig,
)


def _proxy_arguments():
    return {
        "proxy-mode": ["blah"],
        "iptables-min-sync-period": ["2m"],
        "iptables-masquerade-bit": ["14"],
        "conntrack-tcp-timeout-close-wait": ["10m"],
        "conntrack-max-per-core": ["5"],
    }


@pytest.fixture
def config():
    return NetworkSpec(
        cluster_network=[ClusterNetworkEntry("10.128.0.0/14", 23)],
        kube_proxy_config=ProxyConfig(
            bind_address="0.0.0.0",
            iptables_sync_period="1m",
            proxy_arguments=_proxy_arguments(),
        ),
    )


@pytest.fixture
def config_ipv6():
    return NetworkSpec(
        cluster_network=[ClusterNetworkEntry("fd00:1234::/48", 64)],
        kube_proxy_config=ProxyConfig(
            bind_address="::",
            iptables_sync_period="1m",
            proxy_arguments=_proxy_arguments(),
        ),
    )


def _sdn_spec():
    return NetworkSpec(
        service_network=["172.30.0.0/16"],
        cluster_network=[
            ClusterNetworkEntry("10.128.0.0/15", 23),
            ClusterNetworkEntry("10.0.0.0/14", 24),
        ],
        default_network=DefaultNetworkDefinition(
            type=NETWORK_TYPE_OPENSHIFT_SDN,
            openshift_sdn_config=OpenShiftSDNConfig(mode=SDN_MODE_NETWORK_POLICY),
        ),
    )


def test_config_validates(config):
    assert validate_kube_proxy(config) == []


def test_ipv6_config_validates(config_ipv6):
    assert validate_kube_proxy(config_ipv6) == []


@pytest.mark.parametrize(
    "network_type, accepts, deploys",
    [
        (NETWORK_TYPE_OPENSHIFT_SDN, True, False),
        (NETWORK_TYPE_OVN_KUBERNETES, False, False),
        (NETWORK_TYPE_KURYR, False, False),
        ("Flannel", True, True),
    ],
)
def test_should_deploy_kube_proxy(network_type, accepts, deploys):
    conf = NetworkSpec(default_network=DefaultNetworkDefinition(type=network_type))
    assert accepts_kube_proxy_config(conf) is accepts
    assert default_deploy_kube_proxy(conf) is deploys


def test_validate_empty_spec():
    assert validate_kube_proxy(NetworkSpec()) == []


def test_validate_default_sdn_spec():
    assert validate_kube_proxy(_sdn_spec()) == []


def test_validate_reasonable_values_then_break_them():
    conf = NetworkSpec(
        kube_proxy_config=ProxyConfig(
            bind_address="1.2.3.4",
            iptables_sync_period="30s",
            proxy_arguments={"foo": ["bar"]},
        )
    )
    assert validate_kube_proxy(conf) == []

    conf.kube_proxy_config.bind_address = "invalid"
    conf.kube_proxy_config.iptables_sync_period = "asdf"
    conf.kube_proxy_config.proxy_arguments["healthz-port"] = ["9102"]
    conf.kube_proxy_config.proxy_arguments["metrics-port"] = ["10255"]
    conf.kube_proxy_config.proxy_arguments["feature-gates"] = ["FGFoo=bar,FGBaz=bah"]
    errors = validate_kube_proxy(conf)
    assert len(errors) == 5
    assert "BindAddress must be a valid IP address" in errors
    assert 'IptablesSyncPeriod is not a valid duration (time: invalid duration "asdf")' in errors
    assert "kube-proxy --healthz-port cannot be overridden" in errors
    assert "kube-proxy --metrics-port cannot be overridden" in errors
    assert "kube-proxy --feature-gates cannot be overridden" in errors


def test_metrics_port_override_rules():
    conf = _sdn_spec()
    conf.kube_proxy_config = ProxyConfig(proxy_arguments={"metrics-port": ["29101"]})
    assert len(validate_kube_proxy(conf)) == 1

    conf.kube_proxy_config.proxy_arguments = {"metrics-port": ["9101"]}
    assert validate_kube_proxy(conf) == []

    conf.kube_proxy_config.proxy_arguments = {"feature-gates": ["FGBar=true"]}
    assert validate_kube_proxy(conf) == ["kube-proxy --feature-gates cannot be overridden"]


def test_old_healthz_default_is_allowed():
    conf = NetworkSpec(kube_proxy_config=ProxyConfig(proxy_arguments={"healthz-port": ["10256"]}))
    assert validate_kube_proxy(conf) == []


def test_ovn_rejects_kube_proxy_options():
    conf = NetworkSpec(
        default_network=DefaultNetworkDefinition(type=NETWORK_TYPE_OVN_KUBERNETES),
        kube_proxy_config=ProxyConfig(iptables_sync_period="30s"),
    )
    assert validate_kube_proxy(conf) == [
        'network type "OVNKubernetes" does not allow specifying kube-proxy options'
    ]


def test_ovn_accepts_default_bind_address():
    conf = NetworkSpec(
        default_network=DefaultNetworkDefinition(type=NETWORK_TYPE_OVN_KUBERNETES),
        kube_proxy_config=ProxyConfig(bind_address="::"),
    )
    assert validate_kube_proxy(conf) == []


@pytest.mark.parametrize(
    "proxy, expected",
    [
        (None, True),
        (ProxyConfig(), True),
        (ProxyConfig(bind_address="0.0.0.0"), True),
        (ProxyConfig(bind_address="::"), True),
        (ProxyConfig(bind_address="1.2.3.4"), False),
        (ProxyConfig(iptables_sync_period="1s"), False),
        (ProxyConfig(proxy_arguments={"a": ["b"]}), False),
        (ProxyConfig(proxy_arguments={}), True),
    ],
)
def test_no_kube_proxy_config(proxy, expected):
    assert no_kube_proxy_config(NetworkSpec(kube_proxy_config=proxy)) is expected


def test_fill_defaults_ipv4():
    conf = NetworkSpec(
        cluster_network=[ClusterNetworkEntry("192.168.0.0/14", 23)], deploy_kube_proxy=True
    )
    fill_kube_proxy_defaults(conf, None)
    assert conf == NetworkSpec(
        cluster_network=[ClusterNetworkEntry("192.168.0.0/14", 23)],
        deploy_kube_proxy=True,
        kube_proxy_config=ProxyConfig(bind_address="0.0.0.0"),
    )


def test_fill_defaults_ipv6():
    conf = NetworkSpec(
        cluster_network=[ClusterNetworkEntry("fd00:1234::/64", 23)], deploy_kube_proxy=True
    )
    fill_kube_proxy_defaults(conf, None)
    assert conf == NetworkSpec(
        cluster_network=[ClusterNetworkEntry("fd00:1234::/64", 23)],
        deploy_kube_proxy=True,
        kube_proxy_config=ProxyConfig(bind_address="::"),
    )


def test_fill_defaults_without_deploy():
    conf = NetworkSpec(
        cluster_network=[ClusterNetworkEntry("fd00:1234::/64", 23)], deploy_kube_proxy=False
    )
    fill_kube_proxy_defaults(conf, None)
    assert conf == NetworkSpec(
        cluster_network=[ClusterNetworkEntry("fd00:1234::/64", 23)], deploy_kube_proxy=False
    )


def test_fill_defaults_picks_deploy_from_network_type():
    conf = NetworkSpec(
        cluster_network=[ClusterNetworkEntry("192.168.0.0/14", 23)],
        default_network=DefaultNetworkDefinition(type="Flannel"),
        kube_proxy_config=ProxyConfig(iptables_sync_period="42s"),
    )
    fill_kube_proxy_defaults(conf, None)
    assert conf.deploy_kube_proxy is True
    assert conf.kube_proxy_config == ProxyConfig(
        bind_address="0.0.0.0", iptables_sync_period="42s"
    )

    sdn = _sdn_spec()
    fill_kube_proxy_defaults(sdn, None)
    assert sdn.deploy_kube_proxy is False
    assert sdn.kube_proxy_config is None


def test_fill_defaults_keeps_bind_address():
    conf = NetworkSpec(
        cluster_network=[ClusterNetworkEntry("192.168.0.0/14", 23)],
        deploy_kube_proxy=True,
        kube_proxy_config=ProxyConfig(bind_address="1.2.3.4"),
    )
    fill_kube_proxy_defaults(conf, None)
    assert conf.kube_proxy_config.bind_address == "1.2.3.4"


def test_change_is_always_safe():
    assert is_kube_proxy_change_safe(_sdn_spec(), NetworkSpec()) == []


@pytest.mark.parametrize(
    "text, expected",
    [
        ("0", timedelta(0)),
        ("1m", timedelta(minutes=1)),
        ("30s", timedelta(seconds=30)),
        ("42s", timedelta(seconds=42)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("1.5s", timedelta(seconds=1.5)),
        (".5m", timedelta(seconds=30)),
        ("-2s", timedelta(seconds=-2)),
        ("+10ms", timedelta(milliseconds=10)),
        ("250us", timedelta(microseconds=250)),
        ("250\u00b5s", timedelta(microseconds=250)),
        ("1500ns", timedelta(microseconds=1)),
    ],
)
def test_parse_duration(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize(
    "text, message",
    [
        ("", 'time: invalid duration ""'),
        ("asdf", 'time: invalid duration "asdf"'),
        ("-", 'time: invalid duration "-"'),
        (".s", 'time: invalid duration ".s"'),
        ("5", 'time: missing unit in duration "5"'),
        ("3x", 'time: unknown unit "x" in duration "3x"'),
    ],
)
def test_parse_duration_errors(text, message):
    with pytest.raises(ValueError) as info:
        parse_duration(text)
    assert str(info.value) == message


def test_parse_duration_overflow():
    with pytest.raises(ValueError):
        parse_duration("9999999999h")