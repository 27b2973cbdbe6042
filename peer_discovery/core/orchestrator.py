"""
Discovery Orchestrator for Peer Discovery Module.

This module provides the DiscoveryOrchestrator class that runs a complete
discovery: it reads interface addresses, filters them, expands each matching
subnet with AddressSpace, probes every candidate through one bounded
ProbeWorkerPool run and aggregates the peers that answered.
"""

import itertools
import threading
import time
from typing import Iterable, List, Optional, Set

from .address_filters import AddressFilter, build_filter
from .address_space import AddressSpace, CandidateSequence
from .data_models import (
    AddressFamily,
    DiscoverySet,
    DiscoveryStatus,
    InterfaceAddress,
    PeerCandidate,
    ProbeResult,
)
from .interface_provider import InterfaceProvider, PsutilInterfaceProvider
from .probe_pool import ProbeWorkerPool, validate_probe_parameters
from ..config.config_loader import DiscoveryConfig
from ..utils.error_handler import (
    ConfigurationError,
    ErrorContext,
    ErrorHandler,
    ErrorSeverity,
    ErrorType,
    InterfaceEnumerationError,
    ValidationError,
)
from ..utils.logger import Logger, get_logger

# Log a progress line every this many completed probes
PROGRESS_EVERY = 256


class DiscoveryOrchestrator:
    """
    Orchestrates a peer discovery run.

    The orchestrator is the only thread submitting work; probe results flow
    back from worker threads into a lock-protected DiscoverySet.
    """

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        interface_provider: Optional[InterfaceProvider] = None,
        probe_pool: Optional[ProbeWorkerPool] = None,
        logger: Optional[Logger] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Default run parameters (optional)
            interface_provider: Source of host interface addresses (optional)
            probe_pool: Probe engine, e.g. with a custom connector (optional)
            logger: Logger instance (optional)
        """
        self.config = config or DiscoveryConfig()
        self.logger = logger or get_logger(__name__)
        self.error_handler = ErrorHandler(self.logger)
        self.interface_provider = interface_provider or PsutilInterfaceProvider(logger=self.logger)
        self.probe_pool = probe_pool or ProbeWorkerPool(
            logger=self.logger, error_handler=self.error_handler)

    def discover(
        self,
        interfaces: Optional[Iterable[InterfaceAddress]] = None,
        address_filter: Optional[AddressFilter] = None,
        port: Optional[int] = None,
        timeout: Optional[float] = None,
        concurrency_limit: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
        deadline: Optional[float] = None,
        verbose: Optional[bool] = None,
    ) -> DiscoverySet:
        """
        Find running peers on every subnet attached to the host.

        Arguments left as None fall back to the orchestrator configuration;
        interfaces falls back to the interface provider.

        Args:
            interfaces: Interface addresses to consider
            address_filter: Predicate selecting which subnets to probe
            port: Well-known port peers listen on
            timeout: Per-candidate connection timeout in seconds
            concurrency_limit: Maximum simultaneous connection attempts
            cancel_event: Set by the caller to abandon the run
            deadline: Run-level time budget in seconds
            verbose: Keep unreachable results in DiscoverySet.diagnostics

        Returns:
            DiscoverySet with status COMPLETED, or CANCELLED holding the peers
            confirmed before cancellation

        Raises:
            ConfigurationError: If run parameters are malformed
            InterfaceEnumerationError: If interfaces cannot be listed
            ResourceExhaustionError: If the concurrency limit cannot be served
        """
        port = self.config.port if port is None else port
        timeout = self.config.timeout if timeout is None else timeout
        concurrency_limit = self.config.concurrency_limit if concurrency_limit is None else concurrency_limit
        deadline = self.config.deadline if deadline is None else deadline
        verbose = self.config.verbose if verbose is None else verbose

        self._validate_parameters(port, timeout, concurrency_limit, deadline)
        if address_filter is None:
            address_filter = self._filter_from_config()

        discovery_set = DiscoverySet()
        discovery_set.status = DiscoveryStatus.IN_PROGRESS
        started = time.monotonic()

        self.logger.section("PEER DISCOVERY")

        interface_addresses = self._resolve_interfaces(interfaces)
        subnets = self._select_subnets(interface_addresses, address_filter, discovery_set)

        if not subnets:
            self.logger.warning("No interface is attached to a matching network - nothing to probe")
            discovery_set.status = DiscoveryStatus.COMPLETED
            discovery_set.statistics.duration = time.monotonic() - started
            return discovery_set

        local_addresses = self._local_addresses(interface_addresses)
        candidates = self._chain_candidates(subnets, local_addresses)
        subnet_of = self._subnet_lookup(subnets)
        total = sum(len(sequence) for sequence, _ in subnets)

        collector = _ResultCollector(
            discovery_set, port, subnet_of, verbose, total, self.logger)

        self.logger.info(
            f"Probing {total} candidates on port {port} "
            f"(timeout {timeout}s, concurrency {concurrency_limit})")
        self.logger.progress_start(f"Probing {len(subnets)} subnet(s)")

        batch = self.probe_pool.probe(
            candidates,
            port=port,
            timeout=timeout,
            concurrency_limit=concurrency_limit,
            cancel_event=cancel_event,
            deadline=deadline,
            on_result=collector,
        )

        statistics = discovery_set.statistics
        statistics.candidates_probed = len(batch.results)
        statistics.reachable = len(discovery_set)
        statistics.unreachable = statistics.candidates_probed - statistics.reachable
        statistics.peak_in_flight = batch.peak_in_flight
        statistics.duration = time.monotonic() - started

        for error in batch.errors:
            self.logger.warning(f"Probe warning: {error}")

        if batch.cancelled:
            discovery_set.status = DiscoveryStatus.CANCELLED
            self.logger.progress_end()
            self.logger.warning(
                f"Discovery cancelled: {len(discovery_set)} peer(s) confirmed "
                f"from {statistics.candidates_probed} of {total} candidates")
        else:
            discovery_set.status = DiscoveryStatus.COMPLETED
            self.logger.progress_end(
                f"Discovery completed: {len(discovery_set)} peer(s) found "
                f"in {statistics.duration:.2f}s")

        for peer in discovery_set.peers():
            self.logger.info(f"  • {peer.address}:{peer.port} via {peer.interface_name} ({peer.subnet})")

        return discovery_set

    def _validate_parameters(self, port, timeout, concurrency_limit, deadline) -> None:
        try:
            validate_probe_parameters(port, timeout, concurrency_limit)
            if deadline is not None and (
                    isinstance(deadline, bool) or not isinstance(deadline, (int, float))
                    or deadline <= 0):
                raise ConfigurationError(f"Deadline must be a positive number of seconds, got {deadline!r}")
        except ConfigurationError as e:
            context = ErrorContext(
                error_type=ErrorType.CONFIGURATION_ERROR,
                severity=ErrorSeverity.HIGH,
                operation="discover",
                component="DiscoveryOrchestrator",
            )
            e.error_context = context
            self.error_handler.handle_error(e, context)
            raise

    def _filter_from_config(self) -> AddressFilter:
        return build_filter(
            self.config.address_filter,
            prefixes=self.config.prefixes,
            min_mask_bits=self.config.min_mask_bits,
        )

    def _resolve_interfaces(self, interfaces: Optional[Iterable[InterfaceAddress]]) -> List[InterfaceAddress]:
        """Use the given interfaces or ask the provider; wrap provider failures."""
        if interfaces is not None:
            return list(interfaces)

        self.logger.progress_start("Enumerating network interfaces")
        try:
            resolved = self.interface_provider.get_interface_addresses()
        except Exception as e:
            # Any provider failure aborts the run as one aggregate error
            self.logger.progress_end()
            self._report_interface_error(e)
            if isinstance(e, InterfaceEnumerationError):
                raise
            raise InterfaceEnumerationError(f"Interface enumeration failed: {e}") from e

        self.logger.progress_end(f"Found {len(resolved)} interface address(es)")
        return list(resolved)

    def _report_interface_error(self, error: Exception) -> None:
        context = ErrorContext(
            error_type=ErrorType.INTERFACE_ERROR,
            severity=ErrorSeverity.CRITICAL,
            operation="get_interface_addresses",
            component=type(self.interface_provider).__name__,
        )
        self.error_handler.handle_error(error, context)

    def _select_subnets(self, interface_addresses: List[InterfaceAddress],
                        address_filter: AddressFilter,
                        discovery_set: DiscoverySet) -> List[tuple]:
        """
        Apply the filter and expand each matching subnet once.

        Returns:
            List of (CandidateSequence, InterfaceAddress) pairs
        """
        selected = []
        seen: Set[CandidateSequence] = set()
        statistics = discovery_set.statistics

        for interface_address in interface_addresses:
            if interface_address.family != AddressFamily.IPV4:
                self.logger.debug(
                    f"Skipping {interface_address.cidr} on {interface_address.interface_name}: not IPv4")
                statistics.subnets_skipped.append(interface_address.cidr)
                continue
            if not address_filter(interface_address):
                self.logger.debug(
                    f"Skipping {interface_address.cidr} on {interface_address.interface_name}: filtered out")
                statistics.subnets_skipped.append(interface_address.cidr)
                continue

            sequence = self._expand_subnet(interface_address)
            if sequence in seen:
                self.logger.debug(f"Subnet {sequence.cidr} already selected, skipping duplicate")
                continue

            seen.add(sequence)
            selected.append((sequence, interface_address))
            statistics.subnets_scanned.append(sequence.cidr)
            self.logger.subnet_info(sequence.cidr, interface_address.interface_name, len(sequence))

        return selected

    def _expand_subnet(self, interface_address: InterfaceAddress) -> CandidateSequence:
        try:
            return AddressSpace.iterate(
                interface_address.address,
                interface_address.mask_bits,
                exclude_reserved=self.config.exclude_reserved,
            )
        except ValidationError as e:
            context = ErrorContext(
                error_type=ErrorType.VALIDATION_ERROR,
                severity=ErrorSeverity.HIGH,
                operation="select_subnets",
                component="DiscoveryOrchestrator",
                additional_info={"interface": interface_address.interface_name},
            )
            e.error_context = context
            self.error_handler.handle_error(e, context)
            raise

    def _local_addresses(self, interface_addresses: List[InterfaceAddress]) -> Set[str]:
        if not self.config.exclude_local_addresses:
            return set()
        return {interface_address.address for interface_address in interface_addresses}

    def _chain_candidates(self, subnets: List[tuple], local_addresses: Set[str]):
        """One lazy stream over all subnets so a single concurrency bound applies."""
        chained = itertools.chain.from_iterable(sequence for sequence, _ in subnets)
        if not local_addresses:
            return chained
        return (candidate for candidate in chained if str(candidate) not in local_addresses)

    def _subnet_lookup(self, subnets: List[tuple]):
        def _lookup(address: str):
            for sequence, interface_address in subnets:
                if address in sequence:
                    return sequence, interface_address
            return None

        return _lookup


class _ResultCollector:
    """Turns probe results into DiscoverySet entries; called from workers."""

    def __init__(self, discovery_set: DiscoverySet, port: int, subnet_of,
                 verbose: bool, total: int, logger: Logger):
        self.discovery_set = discovery_set
        self.port = port
        self.subnet_of = subnet_of
        self.verbose = verbose
        self.total = total
        self.logger = logger
        self._count = itertools.count(1)

    def __call__(self, result: ProbeResult) -> None:
        completed = next(self._count)

        if result.reachable:
            match = self.subnet_of(result.address)
            sequence, interface_address = match if match else (None, None)
            self.discovery_set.add(PeerCandidate(
                address=result.address,
                port=self.port,
                interface_name=interface_address.interface_name if interface_address else "",
                subnet=sequence.cidr if sequence else "",
                elapsed=result.elapsed,
            ))
            self.logger.info(f"Peer candidate found at {result.address}:{self.port}")
        elif self.verbose:
            self.discovery_set.add_diagnostic(result)
            self.logger.debug(f"{result.address} unreachable: {result.error}")

        if completed % PROGRESS_EVERY == 0:
            self.logger.progress_update(f"{completed}/{self.total} candidates probed")
