"""
Subnet address enumeration.

AddressSpace turns a local address and its mask into the ordered sequence of
every address in that subnet. Addresses advance one at a time through
increment_address, which adds one to the big-endian bytes and carries from
255 back to 0 into the next more-significant byte. Iteration stops as soon
as the next address is no longer inside the subnet.
"""

import ipaddress
from typing import Iterator, Tuple, Union

from ..utils.error_handler import InvalidAddressError
from ..utils.network_utils import parse_ipv4, parse_mask_bits, mask_from_bits, ALL_ONES


def increment_address(address: ipaddress.IPv4Address) -> Tuple[ipaddress.IPv4Address, bool]:
    """
    Return the address following the given one.

    Args:
        address: Current address

    Returns:
        Tuple of (next_address, wrapped). wrapped is True when the carry ran
        off the most significant byte, i.e. 255.255.255.255 became 0.0.0.0.
    """
    octets = bytearray(address.packed)
    for index in range(len(octets) - 1, -1, -1):
        if octets[index] < 255:
            octets[index] += 1
            return ipaddress.IPv4Address(bytes(octets)), False
        octets[index] = 0
    return ipaddress.IPv4Address(bytes(octets)), True


class CandidateSequence:
    """
    Restartable, ascending sequence of the addresses in one subnet.

    Every call to iter() starts again at the first address, so several
    consumers can walk the same sequence independently. The object itself
    holds only immutable values.
    """

    def __init__(self, network: ipaddress.IPv4Address, mask_bits: int,
                 exclude_reserved: bool = False):
        self.network = network
        self.mask_bits = mask_bits
        self.mask = mask_from_bits(mask_bits)
        self.broadcast = ipaddress.IPv4Address(int(network) | (~self.mask & ALL_ONES))
        # /31 and /32 have no network or broadcast address to skip
        self.exclude_reserved = exclude_reserved and mask_bits <= 30

    @property
    def cidr(self) -> str:
        return f"{self.network}/{self.mask_bits}"

    @property
    def first(self) -> ipaddress.IPv4Address:
        if self.exclude_reserved:
            return self.network + 1
        return self.network

    @property
    def last(self) -> ipaddress.IPv4Address:
        if self.exclude_reserved:
            return self.broadcast - 1
        return self.broadcast

    def _in_subnet(self, address: ipaddress.IPv4Address) -> bool:
        return (int(address) & self.mask) == int(self.network)

    def __iter__(self) -> Iterator[ipaddress.IPv4Address]:
        current = self.network
        while True:
            if not (self.exclude_reserved and current in (self.network, self.broadcast)):
                yield current
            current, wrapped = increment_address(current)
            if wrapped or not self._in_subnet(current):
                return

    def __len__(self) -> int:
        total = 1 << (32 - self.mask_bits)
        return total - 2 if self.exclude_reserved else total

    def __contains__(self, address: object) -> bool:
        try:
            candidate = parse_ipv4(address)
        except InvalidAddressError:
            return False
        return self._in_subnet(candidate) and self.first <= candidate <= self.last

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CandidateSequence):
            return NotImplemented
        return (self.network, self.mask_bits, self.exclude_reserved) == (
            other.network, other.mask_bits, other.exclude_reserved)

    def __hash__(self) -> int:
        return hash((self.network, self.mask_bits, self.exclude_reserved))

    def __repr__(self) -> str:
        return f"CandidateSequence({self.cidr}, exclude_reserved={self.exclude_reserved})"


class AddressSpace:
    """Computes subnets and their candidate addresses."""

    @staticmethod
    def network_identifier(address: Union[str, ipaddress.IPv4Address],
                           mask_bits: Union[int, str]) -> ipaddress.IPv4Address:
        """
        AND the address with the mask derived from mask_bits.

        Raises:
            InvalidAddressError: If address is not IPv4
            InvalidMaskError: If mask_bits is invalid
        """
        parsed = parse_ipv4(address)
        bits = parse_mask_bits(mask_bits)
        return ipaddress.IPv4Address(int(parsed) & mask_from_bits(bits))

    @classmethod
    def iterate(cls, address: Union[str, ipaddress.IPv4Address],
                mask_bits: Union[int, str],
                exclude_reserved: bool = False) -> CandidateSequence:
        """
        Build the candidate sequence for the subnet containing address.

        Inputs are validated here, before any address is produced, so nothing
        can fail halfway through an iteration.

        Args:
            address: Any address inside the subnet
            mask_bits: Prefix length or dotted netmask
            exclude_reserved: Drop the network identifier and the broadcast
                address (only for prefixes up to /30)

        Returns:
            CandidateSequence from the network identifier to the broadcast
            address in ascending order

        Raises:
            InvalidAddressError: If address is not IPv4
            InvalidMaskError: If mask_bits is invalid
        """
        bits = parse_mask_bits(mask_bits)
        network = cls.network_identifier(address, bits)
        return CandidateSequence(network, bits, exclude_reserved=exclude_reserved)
