"""
Predicates deciding which interface addresses get their subnet probed.

A filter is any callable taking an InterfaceAddress and returning a bool.
Addresses rejected by the filter are skipped quietly.
"""

from typing import Callable, Iterable, List, Optional

from .data_models import AddressFamily, InterfaceAddress
from ..utils.error_handler import ConfigurationError
from ..utils.network_utils import is_link_local_ip, is_loopback_ip, is_private_ip

AddressFilter = Callable[[InterfaceAddress], bool]

FILTER_NAMES = ("private", "ipv4", "prefix", "any")


def ipv4_only(interface_address: InterfaceAddress) -> bool:
    return interface_address.family == AddressFamily.IPV4


def private_range_only(interface_address: InterfaceAddress) -> bool:
    """IPv4 addresses inside 10/8, 172.16/12 or 192.168/16."""
    return ipv4_only(interface_address) and is_private_ip(interface_address.address)


def not_loopback(interface_address: InterfaceAddress) -> bool:
    return not is_loopback_ip(interface_address.address)


def not_link_local(interface_address: InterfaceAddress) -> bool:
    return not is_link_local_ip(interface_address.address)


def prefix_matches(prefixes: Iterable[str]) -> AddressFilter:
    """
    Accept IPv4 addresses whose text starts with one of the prefixes.

    Prefixes are plain textual patterns such as "192.168." or "10.0.".
    """
    patterns = tuple(prefix.strip() for prefix in prefixes if prefix and prefix.strip())
    if not patterns:
        raise ConfigurationError("Prefix filter needs at least one prefix")

    def _matches(interface_address: InterfaceAddress) -> bool:
        return ipv4_only(interface_address) and interface_address.address.startswith(patterns)

    return _matches


def max_subnet_size(min_mask_bits: int) -> AddressFilter:
    """Reject subnets larger than /min_mask_bits."""

    def _fits(interface_address: InterfaceAddress) -> bool:
        return interface_address.mask_bits >= min_mask_bits

    return _fits


def all_of(*filters: AddressFilter) -> AddressFilter:
    def _all(interface_address: InterfaceAddress) -> bool:
        return all(check(interface_address) for check in filters)

    return _all


def any_of(*filters: AddressFilter) -> AddressFilter:
    def _any(interface_address: InterfaceAddress) -> bool:
        return any(check(interface_address) for check in filters)

    return _any


def build_filter(name: str = "private", prefixes: Optional[List[str]] = None,
                 min_mask_bits: Optional[int] = None) -> AddressFilter:
    """
    Build the address filter named in the configuration.

    Args:
        name: One of "private", "ipv4", "prefix", "any"
        prefixes: Prefix patterns for the "prefix" filter
        min_mask_bits: Smallest prefix length allowed, None for no limit

    Returns:
        Combined filter. Every filter except "any" rejects loopback and
        link-local addresses and non-IPv4 families.

    Raises:
        ConfigurationError: If the name is unknown or prefixes are missing
    """
    if name == "private":
        base = private_range_only
    elif name == "ipv4":
        base = ipv4_only
    elif name == "prefix":
        base = prefix_matches(prefixes or [])
    elif name == "any":
        base = ipv4_only
    else:
        raise ConfigurationError(
            f"Unknown address filter '{name}'. Must be one of {list(FILTER_NAMES)}")

    checks = [base]
    if name != "any":
        checks.extend([not_loopback, not_link_local])
    if min_mask_bits is not None:
        checks.append(max_subnet_size(min_mask_bits))
    return all_of(*checks)


# Default: IPv4 private ranges only
default_filter = build_filter("private")
