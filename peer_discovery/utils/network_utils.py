"""
Network utility functions for IPv4 address and mask handling.

This module provides helper functions for parsing addresses and masks into
validated values, mask arithmetic, and address classification used by the
address filters.
"""

import ipaddress
from typing import Tuple, Union

from .error_handler import InvalidAddressError, InvalidMaskError

IPV4_BITS = 32
ALL_ONES = (1 << IPV4_BITS) - 1


def parse_ipv4(address: Union[str, ipaddress.IPv4Address]) -> ipaddress.IPv4Address:
    """
    Parse an IPv4 address.

    Args:
        address: Dotted-quad string or IPv4Address

    Returns:
        ipaddress.IPv4Address

    Raises:
        InvalidAddressError: If the value is not an IPv4 address
    """
    if isinstance(address, ipaddress.IPv4Address):
        return address
    if not isinstance(address, str):
        raise InvalidAddressError(f"Address must be a string, got {type(address).__name__}")
    try:
        return ipaddress.IPv4Address(address.strip())
    except ipaddress.AddressValueError as e:
        raise InvalidAddressError(f"Invalid IPv4 address: {address!r}") from e


def parse_mask_bits(mask: Union[int, str]) -> int:
    """
    Parse a mask given as a prefix length or a dotted netmask.

    Accepts 24, "24", "/24" and "255.255.255.0".

    Args:
        mask: Mask in one of the accepted forms

    Returns:
        int: Prefix length between 0 and 32

    Raises:
        InvalidMaskError: If the mask is out of range or not contiguous
    """
    if isinstance(mask, bool):
        raise InvalidMaskError(f"Invalid mask: {mask!r}")

    if isinstance(mask, int):
        bits = mask
    elif isinstance(mask, str):
        text = mask.strip().lstrip("/")
        if "." in text:
            return netmask_to_cidr(text)
        if not (text.isascii() and text.isdigit()):
            raise InvalidMaskError(f"Invalid mask: {mask!r}")
        bits = int(text)
    else:
        raise InvalidMaskError(f"Mask must be an int or string, got {type(mask).__name__}")

    if not 0 <= bits <= IPV4_BITS:
        raise InvalidMaskError(f"Mask bits must be between 0 and 32, got {bits}")
    return bits


def mask_from_bits(mask_bits: int) -> int:
    """
    Integer mask with the top mask_bits bits set.

    Args:
        mask_bits: Prefix length (0-32)

    Returns:
        int: Mask as a 32-bit integer
    """
    if mask_bits == 0:
        return 0
    return (ALL_ONES << (IPV4_BITS - mask_bits)) & ALL_ONES


def netmask_to_cidr(netmask: str) -> int:
    """
    Convert dotted decimal netmask to CIDR notation.

    Args:
        netmask: Dotted decimal netmask (e.g., "255.255.255.0")

    Returns:
        int: CIDR prefix length

    Raises:
        InvalidMaskError: If netmask is invalid or not contiguous
    """
    try:
        value = int(ipaddress.IPv4Address(netmask))
    except ipaddress.AddressValueError as e:
        raise InvalidMaskError(f"Invalid netmask: {netmask}") from e

    # Host bits must form a single run of ones at the low end
    host_bits = ~value & ALL_ONES
    if host_bits & (host_bits + 1):
        raise InvalidMaskError(f"Netmask is not contiguous: {netmask}")
    return IPV4_BITS - host_bits.bit_length()


def parse_cidr(cidr: str) -> Tuple[str, int]:
    """
    Split "address/mask" into a validated address and prefix length.

    A bare address is treated as /32.

    Raises:
        InvalidAddressError: If the address part is invalid
        InvalidMaskError: If the mask part is invalid
    """
    address, _, mask = cidr.strip().partition("/")
    parsed = parse_ipv4(address)
    return str(parsed), parse_mask_bits(mask) if mask else IPV4_BITS


def is_private_ip(ip_address: str) -> bool:
    """
    Check if an IP address is in an RFC 1918 private range.

    Private ranges: 10.0.0.0/8, 172.16.0.0/12, 192.168.0.0/16

    Args:
        ip_address: IP address to check

    Returns:
        bool: True if IP is private, False otherwise
    """
    try:
        ip = ipaddress.IPv4Address(ip_address)
    except ipaddress.AddressValueError:
        return False
    return any(ip in network for network in PRIVATE_NETWORKS)


def is_loopback_ip(ip_address: str) -> bool:
    """
    Check if an IP address is a loopback address.

    Args:
        ip_address: IP address to check

    Returns:
        bool: True if IP is loopback, False otherwise
    """
    try:
        return ipaddress.IPv4Address(ip_address).is_loopback
    except ipaddress.AddressValueError:
        return False


def is_link_local_ip(ip_address: str) -> bool:
    """Check for APIPA (169.254.0.0/16) addresses."""
    try:
        return ipaddress.IPv4Address(ip_address).is_link_local
    except ipaddress.AddressValueError:
        return False


def ip_sort_key(ip_address: str) -> tuple:
    """
    Generate sort key for IP address to enable proper sorting.

    Args:
        ip_address: IP address string

    Returns:
        tuple: Sort key for IP address
    """
    try:
        return tuple(int(part) for part in ip_address.split('.'))
    except (ValueError, AttributeError):
        # Fallback for invalid IP addresses
        return (999, 999, 999, 999)


PRIVATE_NETWORKS = (
    ipaddress.IPv4Network("10.0.0.0/8"),
    ipaddress.IPv4Network("172.16.0.0/12"),
    ipaddress.IPv4Network("192.168.0.0/16"),
)
