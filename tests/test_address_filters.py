"""Tests for interface address filters."""

import pytest

from peer_discovery.core.address_filters import (
    FILTER_NAMES,
    all_of,
    any_of,
    build_filter,
    default_filter,
    max_subnet_size,
    prefix_matches,
    private_range_only,
)
from peer_discovery.core.data_models import AddressFamily, InterfaceAddress
from peer_discovery.utils.error_handler import ConfigurationError


def iface(address, mask_bits=24, family=AddressFamily.IPV4):
    return InterfaceAddress("eth0", address, mask_bits, family)


class TestPrivateRange:

    @pytest.mark.parametrize("address", ["10.0.0.1", "172.16.0.1", "172.31.255.254", "192.168.1.10"])
    def test_private_accepted(self, address):
        assert private_range_only(iface(address))

    @pytest.mark.parametrize("address", ["8.8.8.8", "172.32.0.1", "192.169.0.1", "100.64.0.1"])
    def test_public_rejected(self, address):
        assert not private_range_only(iface(address))

    def test_ipv6_rejected(self):
        assert not private_range_only(iface("fd00::1", 64, AddressFamily.IPV6))


class TestBuildFilter:

    def test_default_filter(self):
        assert default_filter(iface("192.168.1.10"))
        assert not default_filter(iface("8.8.8.8"))
        assert not default_filter(iface("127.0.0.1", 8))

    def test_ipv4_filter_accepts_public_but_not_loopback(self):
        check = build_filter("ipv4")
        assert check(iface("8.8.8.8"))
        assert not check(iface("127.0.0.1", 8))
        assert not check(iface("169.254.10.1", 16))
        assert not check(iface("fe80::1", 64, AddressFamily.IPV6))

    def test_any_filter_accepts_loopback_but_not_ipv6(self):
        check = build_filter("any")
        assert check(iface("127.0.0.1", 32))
        assert check(iface("169.254.10.1", 16))
        assert not check(iface("::1", 128, AddressFamily.IPV6))

    def test_prefix_filter(self):
        check = build_filter("prefix", prefixes=["192.168.", "10.0."])
        assert check(iface("192.168.5.1"))
        assert check(iface("10.0.3.1"))
        assert not check(iface("10.1.0.1"))

    def test_prefix_filter_needs_prefixes(self):
        with pytest.raises(ConfigurationError):
            build_filter("prefix")
        with pytest.raises(ConfigurationError):
            prefix_matches(["", "  "])

    def test_min_mask_bits(self):
        check = build_filter("private", min_mask_bits=16)
        assert check(iface("10.0.0.1", 16))
        assert not check(iface("10.0.0.1", 15))

    def test_unknown_name(self):
        with pytest.raises(ConfigurationError):
            build_filter("public")

    def test_every_name_builds(self):
        for name in FILTER_NAMES:
            assert callable(build_filter(name, prefixes=["10."]))


class TestCombinators:

    def test_all_of_and_any_of(self):
        small = max_subnet_size(24)
        eth = prefix_matches(["192.168."])

        assert all_of(small, eth)(iface("192.168.1.1", 24))
        assert not all_of(small, eth)(iface("192.168.1.1", 20))
        assert any_of(small, eth)(iface("192.168.1.1", 20))
        assert not any_of(small, eth)(iface("10.0.0.1", 20))
