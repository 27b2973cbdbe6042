"""
Tests for subnet enumeration.

Covers:
1. increment_address byte-wise carry
2. Sequence bounds, length and ordering
3. Restartability
4. Optional exclusion of network and broadcast addresses
5. Input validation at call time
"""

import ipaddress

import pytest

from peer_discovery.core.address_space import AddressSpace, CandidateSequence, increment_address
from peer_discovery.utils.error_handler import InvalidAddressError, InvalidMaskError


def ip(text):
    return ipaddress.IPv4Address(text)


# ------------------------------------------------------------------ #
# increment_address
# ------------------------------------------------------------------ #

class TestIncrementAddress:

    def test_simple_increment(self):
        assert increment_address(ip("192.168.1.7")) == (ip("192.168.1.8"), False)

    def test_carry_into_next_byte(self):
        assert increment_address(ip("192.168.1.255")) == (ip("192.168.2.0"), False)

    def test_carry_through_several_bytes(self):
        assert increment_address(ip("10.255.255.255")) == (ip("11.0.0.0"), False)

    def test_wraps_at_top_of_address_space(self):
        assert increment_address(ip("255.255.255.255")) == (ip("0.0.0.0"), True)

    def test_returns_new_value(self):
        original = ip("10.0.0.1")
        following, _ = increment_address(original)
        assert original == ip("10.0.0.1")
        assert following is not original


# ------------------------------------------------------------------ #
# Sequence contents
# ------------------------------------------------------------------ #

class TestIterate:

    def test_slash_24_is_exactly_256_addresses(self):
        addresses = list(AddressSpace.iterate("192.168.1.0", 24))
        assert len(addresses) == 256
        assert addresses[0] == ip("192.168.1.0")
        assert addresses[-1] == ip("192.168.1.255")
        assert ip("192.168.2.0") not in addresses

    def test_starts_at_network_identifier_for_host_address(self):
        sequence = AddressSpace.iterate("192.168.1.77", 24)
        assert sequence.network == ip("192.168.1.0")
        assert next(iter(sequence)) == ip("192.168.1.0")

    @pytest.mark.parametrize("address,mask_bits", [
        ("10.1.2.3", 32),
        ("10.1.2.3", 31),
        ("10.1.2.3", 30),
        ("172.16.5.9", 28),
        ("172.16.5.9", 23),
        ("192.168.100.200", 20),
        ("10.20.30.40", 16),
    ])
    def test_length_bounds_and_order(self, address, mask_bits):
        network = ipaddress.IPv4Network(f"{address}/{mask_bits}", strict=False)
        addresses = list(AddressSpace.iterate(address, mask_bits))

        assert len(addresses) == 2 ** (32 - mask_bits)
        assert addresses[0] == network.network_address
        assert addresses[-1] == network.broadcast_address
        assert all(a < b for a, b in zip(addresses, addresses[1:]))

    def test_crosses_byte_boundary_in_order(self):
        addresses = list(AddressSpace.iterate("10.0.0.0", 23))
        index = addresses.index(ip("10.0.0.255"))
        assert addresses[index + 1] == ip("10.0.1.0")

    def test_subnet_at_top_of_address_space_terminates(self):
        addresses = list(AddressSpace.iterate("255.255.255.10", 24))
        assert len(addresses) == 256
        assert addresses[-1] == ip("255.255.255.255")

    def test_len_matches_without_iterating(self):
        sequence = AddressSpace.iterate("0.0.0.0", 0)
        assert len(sequence) == 2 ** 32
        assert sequence.first == ip("0.0.0.0")
        assert sequence.last == ip("255.255.255.255")

    def test_contains(self):
        sequence = AddressSpace.iterate("192.168.1.0", 24)
        assert "192.168.1.24" in sequence
        assert "192.168.2.0" not in sequence
        assert "not an address" not in sequence


class TestRestartability:

    def test_reiterating_yields_identical_sequence(self):
        sequence = AddressSpace.iterate("172.16.0.1", 26)
        assert list(sequence) == list(sequence)

    def test_repeated_calls_are_equal(self):
        first = AddressSpace.iterate("172.16.0.1", 26)
        second = AddressSpace.iterate("172.16.0.1", 26)
        assert first == second
        assert list(first) == list(second)

    def test_interleaved_iterators_are_independent(self):
        sequence = AddressSpace.iterate("10.0.0.0", 30)
        a, b = iter(sequence), iter(sequence)
        assert next(a) == ip("10.0.0.0")
        assert next(a) == ip("10.0.0.1")
        assert next(b) == ip("10.0.0.0")
        assert list(a) == [ip("10.0.0.2"), ip("10.0.0.3")]


class TestExcludeReserved:

    def test_slash_24_drops_network_and_broadcast(self):
        sequence = AddressSpace.iterate("192.168.1.0", 24, exclude_reserved=True)
        addresses = list(sequence)
        assert len(addresses) == len(sequence) == 254
        assert addresses[0] == ip("192.168.1.1")
        assert addresses[-1] == ip("192.168.1.254")
        assert "192.168.1.0" not in sequence

    def test_slash_31_keeps_both_addresses(self):
        sequence = AddressSpace.iterate("10.0.0.0", 31, exclude_reserved=True)
        assert list(sequence) == [ip("10.0.0.0"), ip("10.0.0.1")]

    def test_slash_32_keeps_single_address(self):
        assert list(AddressSpace.iterate("10.0.0.9", 32, exclude_reserved=True)) == [ip("10.0.0.9")]

    def test_default_includes_reserved(self):
        sequence = AddressSpace.iterate("192.168.1.0", 24)
        assert isinstance(sequence, CandidateSequence)
        assert "192.168.1.0" in sequence
        assert "192.168.1.255" in sequence


# ------------------------------------------------------------------ #
# Validation
# ------------------------------------------------------------------ #

class TestValidation:

    @pytest.mark.parametrize("mask", ["255.255.255.0", "/24", "24", 24])
    def test_mask_forms(self, mask):
        assert AddressSpace.iterate("192.168.1.5", mask).mask_bits == 24

    @pytest.mark.parametrize("address", ["300.1.1.1", "abc", "", "::1", "192.168.1", None])
    def test_invalid_address(self, address):
        with pytest.raises(InvalidAddressError):
            AddressSpace.iterate(address, 24)

    @pytest.mark.parametrize("mask", [
        33, -1, "33", "abc", "255.0.255.0", "0.0.0.255", True, None, 24.0,
        "²", "¹⁴", "/²", "２４",
    ])
    def test_invalid_mask(self, mask):
        with pytest.raises(InvalidMaskError):
            AddressSpace.iterate("192.168.1.1", mask)

    def test_network_identifier(self):
        assert AddressSpace.network_identifier("172.16.200.14", 12) == ip("172.16.0.0")
