"""
Bounded-concurrency probe engine.

ProbeWorkerPool makes one connection attempt per candidate address while
never having more than ``concurrency_limit`` attempts outstanding. Submission
is gated by a semaphore, so the candidate iterator is consumed lazily and a
worker slot is handed to the next candidate as soon as an attempt finishes.
"""

import platform
import threading
import time
from concurrent.futures import ThreadPoolExecutor, Future
from functools import partial
from typing import Callable, Iterable, List, Optional

from .connector import TCPConnector
from .data_models import DiscoveryStatus, ProbeBatchResult, ProbeResult
from ..utils.error_handler import (
    ConfigurationError, ErrorContext, ErrorHandler, ErrorSeverity, ErrorType,
    ProbeTimeoutError, ResourceExhaustionError,
)
from ..utils.logger import Logger, get_logger

# Descriptors kept free for the interpreter, logging and report files
DESCRIPTOR_HEADROOM = 32

# How often a blocked launch loop re-checks cancellation, in seconds
SLOT_POLL_INTERVAL = 0.05


def validate_probe_parameters(port: int, timeout: float, concurrency_limit: int) -> None:
    """
    Check probe parameters before any socket is opened.

    Raises:
        ConfigurationError: If a parameter is out of range
    """
    if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
        raise ConfigurationError(f"Port must be between 1 and 65535, got {port!r}")
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigurationError(f"Timeout must be a positive number of seconds, got {timeout!r}")
    if (isinstance(concurrency_limit, bool) or not isinstance(concurrency_limit, int)
            or concurrency_limit < 1):
        raise ConfigurationError(
            f"Concurrency limit must be an integer >= 1, got {concurrency_limit!r}")


def descriptor_limit() -> Optional[int]:
    """Soft limit on open file descriptors, or None when unlimited/unknown."""
    if platform.system().lower() == "windows":
        return None

    import resource

    soft, _ = resource.getrlimit(resource.RLIMIT_NOFILE)
    if soft == resource.RLIM_INFINITY:
        return None
    return soft


class _RunState:
    """Bookkeeping shared between the launch loop and worker callbacks."""

    def __init__(self, cancel_event: threading.Event, deadline: Optional[float]):
        self.lock = threading.Lock()
        self.cancel_event = cancel_event
        self.stop_at = time.monotonic() + deadline if deadline else None
        self.stopped = False
        self.in_flight = 0
        self.peak_in_flight = 0
        self.results: List[ProbeResult] = []
        self.errors: List[str] = []

    def should_stop(self) -> bool:
        if not self.stopped:
            if self.cancel_event.is_set():
                self.stopped = True
            elif self.stop_at is not None and time.monotonic() >= self.stop_at:
                self.stopped = True
        return self.stopped

    def launched(self) -> None:
        with self.lock:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)

    def finished(self) -> None:
        with self.lock:
            self.in_flight -= 1


class ProbeWorkerPool:
    """
    Probes candidate addresses with a fixed number of worker threads.

    The connector is injected so tests and callers can replace the TCP
    attempt; see TCPConnector for the contract.
    """

    def __init__(self, connector: Optional[Callable[[str, int, float], None]] = None,
                 logger: Optional[Logger] = None,
                 error_handler: Optional[ErrorHandler] = None):
        """
        Initialize the pool.

        Args:
            connector: Callable performing one connection attempt
            logger: Logger instance for progress and errors
            error_handler: ErrorHandler instance for centralized error reporting
        """
        self.connector = connector or TCPConnector()
        self.logger = logger or get_logger(__name__)
        self.error_handler = error_handler or ErrorHandler(self.logger)

    def check_resources(self, concurrency_limit: int) -> None:
        """
        Make sure the process can hold concurrency_limit sockets open.

        Raises:
            ResourceExhaustionError: If the descriptor limit is too low
        """
        limit = descriptor_limit()
        if limit is None:
            return

        available = limit - DESCRIPTOR_HEADROOM
        if concurrency_limit > available:
            context = ErrorContext(
                error_type=ErrorType.RESOURCE_ERROR,
                severity=ErrorSeverity.HIGH,
                operation="check_resources",
                component="ProbeWorkerPool",
                additional_info={"descriptor_limit": limit},
            )
            error = ResourceExhaustionError(
                f"Concurrency limit {concurrency_limit} exceeds the {available} "
                f"descriptors available (soft limit {limit})",
                context,
            )
            self.error_handler.handle_error(error, context)
            raise error

    def probe(self, candidates: Iterable, port: int, timeout: float,
              concurrency_limit: int,
              cancel_event: Optional[threading.Event] = None,
              deadline: Optional[float] = None,
              on_result: Optional[Callable[[ProbeResult], None]] = None) -> ProbeBatchResult:
        """
        Probe every candidate once.

        Args:
            candidates: Iterable of addresses (strings or IPv4Address)
            port: TCP port to connect to
            timeout: Per-attempt timeout in seconds
            concurrency_limit: Maximum number of simultaneous attempts
            cancel_event: Set by the caller to abandon the run
            deadline: Run-level time budget in seconds
            on_result: Called from worker threads with each ProbeResult

        Returns:
            ProbeBatchResult with results in completion order. When the run is
            cancelled only results completed before cancellation are kept.

        Raises:
            ConfigurationError: If a parameter is out of range
            ResourceExhaustionError: If the descriptor limit is too low
        """
        validate_probe_parameters(port, timeout, concurrency_limit)
        if deadline is not None and deadline <= 0:
            raise ConfigurationError(f"Deadline must be positive, got {deadline!r}")
        self.check_resources(concurrency_limit)

        state = _RunState(cancel_event or threading.Event(), deadline)
        slots = threading.BoundedSemaphore(concurrency_limit)
        started = time.monotonic()
        submitted = 0

        self.logger.debug(
            "Starting probe run", port=port, timeout=timeout, concurrency=concurrency_limit)

        with ThreadPoolExecutor(max_workers=concurrency_limit,
                                thread_name_prefix="probe") as executor:
            for candidate in candidates:
                if not self._acquire_slot(slots, state):
                    break
                address = str(candidate)
                state.launched()
                future = executor.submit(self._attempt, address, port, timeout)
                future.add_done_callback(
                    partial(self._collect, address, state, slots, on_result))
                submitted += 1
            # Leaving the block waits for in-flight attempts, each bounded by timeout

        cancelled = state.should_stop()
        duration = time.monotonic() - started

        if cancelled:
            self.logger.warning(
                f"Probe run cancelled after {len(state.results)} of {submitted} attempts")
        else:
            self.logger.debug(f"Probe run finished: {len(state.results)} attempts in {duration:.2f}s")

        return ProbeBatchResult(
            status=DiscoveryStatus.CANCELLED if cancelled else DiscoveryStatus.COMPLETED,
            results=list(state.results),
            duration=duration,
            cancelled=cancelled,
            peak_in_flight=state.peak_in_flight,
            errors=list(state.errors),
            metadata={
                "port": port,
                "timeout": timeout,
                "concurrency_limit": concurrency_limit,
                "deadline": deadline,
                "submitted": submitted,
            },
        )

    def _acquire_slot(self, slots: threading.BoundedSemaphore, state: _RunState) -> bool:
        """Wait for a free worker slot; False once the run must stop."""
        while not state.should_stop():
            if slots.acquire(timeout=SLOT_POLL_INTERVAL):
                if state.should_stop():
                    slots.release()
                    return False
                return True
        return False

    def _attempt(self, address: str, port: int, timeout: float) -> ProbeResult:
        """Run one connection attempt and classify the outcome."""
        started = time.monotonic()
        try:
            self.connector(address, port, timeout)
        except ProbeTimeoutError as e:
            return ProbeResult(address, False, f"timeout: {e}", time.monotonic() - started)
        except OSError as e:
            return ProbeResult(address, False, str(e) or type(e).__name__,
                               time.monotonic() - started)
        return ProbeResult(address, True, None, time.monotonic() - started)

    def _collect(self, address: str, state: _RunState,
                 slots: threading.BoundedSemaphore,
                 on_result: Optional[Callable[[ProbeResult], None]],
                 future: Future) -> None:
        """Done-callback: free the slot, then record the result unless cancelled."""
        try:
            result = future.result()
        except Exception as e:
            # Anything other than a connection failure is a connector bug
            message = f"Unexpected error probing {address}: {type(e).__name__}: {e}"
            with state.lock:
                state.errors.append(message)
            self.logger.error(message)
            result = ProbeResult(address, False, message)
        finally:
            state.finished()
            slots.release()

        if state.should_stop():
            return

        with state.lock:
            state.results.append(result)

        if on_result is not None:
            try:
                on_result(result)
            except Exception as e:
                message = f"Result handler failed for {address}: {type(e).__name__}: {e}"
                with state.lock:
                    state.errors.append(message)
                self.logger.error(message)
