"""
Interface providers: the data source for host interface addresses.

The orchestrator never looks at the operating system directly. It asks an
InterfaceProvider for InterfaceAddress values, which keeps discovery testable
and lets the CLI substitute explicit subnets for the host's interfaces.
"""

import socket
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

import psutil

from .data_models import AddressFamily, InterfaceAddress
from ..utils.error_handler import InterfaceEnumerationError, ValidationError
from ..utils.logger import Logger, get_logger
from ..utils.network_utils import netmask_to_cidr, parse_cidr


class InterfaceProvider(ABC):
    """Supplies the (address, mask) pairs attached to the host."""

    @abstractmethod
    def get_interface_addresses(self) -> List[InterfaceAddress]:
        """
        Return every address bound to a host interface.

        Raises:
            InterfaceEnumerationError: If the interface list cannot be read
        """
        pass


class PsutilInterfaceProvider(InterfaceProvider):
    """
    Reads host interfaces through psutil.net_if_addrs().

    IPv4 entries carry their netmask; IPv6 entries are reported with the
    IPV6 family so filters can drop them.
    """

    def __init__(self, include_down: bool = False, logger: Optional[Logger] = None):
        """
        Args:
            include_down: Also report interfaces psutil marks as down
            logger: Logger instance
        """
        self.include_down = include_down
        self.logger = logger or get_logger(__name__)

    def get_interface_addresses(self) -> List[InterfaceAddress]:
        try:
            addresses = psutil.net_if_addrs()
            stats = psutil.net_if_stats()
        except (OSError, RuntimeError) as e:
            raise InterfaceEnumerationError(f"Could not read network interfaces: {e}") from e

        result = []
        for interface_name, entries in addresses.items():
            interface_stats = stats.get(interface_name)
            if not self.include_down and interface_stats is not None and not interface_stats.isup:
                self.logger.debug(f"Skipping interface {interface_name}: down")
                continue

            for entry in entries:
                if entry.family == socket.AF_INET:
                    interface_address = self._ipv4_entry(interface_name, entry)
                elif entry.family == socket.AF_INET6:
                    interface_address = self._ipv6_entry(interface_name, entry)
                else:
                    continue
                if interface_address is not None:
                    result.append(interface_address)

        self.logger.debug(f"Found {len(result)} interface addresses")
        return result

    def _ipv4_entry(self, interface_name: str, entry) -> Optional[InterfaceAddress]:
        if not entry.address:
            return None
        if not entry.netmask:
            self.logger.debug(f"No netmask for {entry.address} on {interface_name}, using /32")
            mask_bits = 32
        else:
            try:
                mask_bits = netmask_to_cidr(entry.netmask)
            except ValidationError as e:
                self.logger.warning(f"Ignoring {entry.address} on {interface_name}: {e}")
                return None
        return InterfaceAddress(interface_name, entry.address, mask_bits, AddressFamily.IPV4)

    def _ipv6_entry(self, interface_name: str, entry) -> Optional[InterfaceAddress]:
        # Link-local scope suffix ("fe80::1%eth0") is not part of the address
        address = entry.address.split("%", 1)[0]
        mask_bits = 128
        if entry.netmask:
            mask_bits = sum(bin(int(group, 16)).count("1")
                            for group in entry.netmask.split(":") if group)
        return InterfaceAddress(interface_name, address, mask_bits, AddressFamily.IPV6)


class StaticInterfaceProvider(InterfaceProvider):
    """Serves a fixed list of subnets, given as CIDR strings."""

    def __init__(self, subnets: Iterable[str], interface_name: str = "static"):
        """
        Args:
            subnets: CIDR strings such as "192.168.1.10/24"
            interface_name: Name reported for every entry

        Raises:
            InvalidAddressError: If an address part is invalid
            InvalidMaskError: If a mask part is invalid
        """
        self._addresses = []
        for subnet in subnets:
            address, mask_bits = parse_cidr(subnet)
            self._addresses.append(InterfaceAddress(interface_name, address, mask_bits))

    def get_interface_addresses(self) -> List[InterfaceAddress]:
        return list(self._addresses)
