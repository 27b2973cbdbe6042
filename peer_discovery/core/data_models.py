"""
Core data models and enums for the Peer Discovery Module.

This module defines the data structures used throughout a discovery run,
from the interface addresses fed in by the host, through individual probe
results, to the DiscoverySet handed back to the caller.
"""

import ipaddress
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any, Iterator

from ..utils.error_handler import DiscoveryCancelledError


class AddressFamily(Enum):
    """Address family of an interface address."""
    IPV4 = "IPv4"
    IPV6 = "IPv6"


class DiscoveryStatus(Enum):
    """Enumeration of possible run statuses."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class InterfaceAddress:
    """
    An address bound to a host interface together with its mask length.

    Attributes:
        interface_name: Name of the interface the address is bound to
        address: Address in textual form
        mask_bits: Prefix length of the attached subnet
        family: Address family of the address
    """
    interface_name: str
    address: str
    mask_bits: int
    family: AddressFamily = AddressFamily.IPV4

    @property
    def cidr(self) -> str:
        return f"{self.address}/{self.mask_bits}"


@dataclass(frozen=True)
class ProbeResult:
    """
    Outcome of a single connection attempt.

    Attributes:
        address: Candidate address that was probed
        reachable: True when the connection completed within the timeout
        error: Reason the candidate is unreachable, if any
        elapsed: Seconds spent on the attempt
    """
    address: str
    reachable: bool
    error: Optional[str] = None
    elapsed: float = 0.0


@dataclass
class ProbeBatchResult:
    """
    Result of one ProbeWorkerPool run.

    Attributes:
        status: COMPLETED, or CANCELLED when the run was stopped early
        results: Probe results in completion order
        duration: Wall time of the run in seconds
        cancelled: Whether the run was cancelled or hit its deadline
        peak_in_flight: Highest number of simultaneous attempts observed
        errors: Unexpected worker errors (never connection failures)
        metadata: Parameters the run was executed with
    """
    status: DiscoveryStatus
    results: List[ProbeResult]
    duration: float = 0.0
    cancelled: bool = False
    peak_in_flight: int = 0
    errors: List[str] = None
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.errors is None:
            self.errors = []
        if self.metadata is None:
            self.metadata = {}

    @property
    def reachable(self) -> List[ProbeResult]:
        return [result for result in self.results if result.reachable]


@dataclass(frozen=True)
class PeerCandidate:
    """
    Marker stored for every address that accepted a connection.

    The enclosing application decides which handshake to run against it.
    """
    address: str
    port: int
    interface_name: str
    subnet: str
    elapsed: float = 0.0


@dataclass
class DiscoveryStatistics:
    """
    Statistics about a discovery run.

    Attributes:
        candidates_probed: Number of completed probe attempts
        reachable: Number of addresses that accepted a connection
        unreachable: Number of addresses that did not
        subnets_scanned: Subnets that were enumerated and probed
        subnets_skipped: Interface addresses rejected by the filter
        duration: Total run time in seconds
        peak_in_flight: Highest number of simultaneous attempts
    """
    candidates_probed: int = 0
    reachable: int = 0
    unreachable: int = 0
    subnets_scanned: List[str] = field(default_factory=list)
    subnets_skipped: List[str] = field(default_factory=list)
    duration: float = 0.0
    peak_in_flight: int = 0


class DiscoverySet:
    """
    Peers confirmed during one discovery run, keyed by address.

    Worker threads add to the set concurrently, so every mutation goes
    through a lock. A new set is created for each run.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._peers: Dict[str, PeerCandidate] = {}
        self.diagnostics: List[ProbeResult] = []
        self.status = DiscoveryStatus.NOT_STARTED
        self.statistics = DiscoveryStatistics()

    def add(self, peer: PeerCandidate) -> None:
        with self._lock:
            self._peers[peer.address] = peer

    def add_diagnostic(self, result: ProbeResult) -> None:
        with self._lock:
            self.diagnostics.append(result)

    def addresses(self) -> List[str]:
        """Confirmed addresses in ascending numeric order."""
        with self._lock:
            return sorted(self._peers, key=lambda ip: int(ipaddress.IPv4Address(ip)))

    def get(self, address: str) -> Optional[PeerCandidate]:
        with self._lock:
            return self._peers.get(address)

    def peers(self) -> List[PeerCandidate]:
        with self._lock:
            snapshot = dict(self._peers)
        return [snapshot[address] for address in sorted(
            snapshot, key=lambda ip: int(ipaddress.IPv4Address(ip)))]

    @property
    def cancelled(self) -> bool:
        return self.status == DiscoveryStatus.CANCELLED

    def raise_if_cancelled(self) -> "DiscoverySet":
        """
        Raise DiscoveryCancelledError if the run was cancelled.

        Returns:
            The set itself when the run finished normally

        Raises:
            DiscoveryCancelledError: carrying this set as partial results
        """
        if self.cancelled:
            raise DiscoveryCancelledError(
                f"Discovery cancelled after confirming {len(self)} peers",
                partial_results=self,
            )
        return self

    def __contains__(self, address: object) -> bool:
        with self._lock:
            return str(address) in self._peers

    def __len__(self) -> int:
        with self._lock:
            return len(self._peers)

    def __iter__(self) -> Iterator[str]:
        return iter(self.addresses())

    def __repr__(self) -> str:
        return f"DiscoverySet(status={self.status.value}, peers={self.addresses()})"
