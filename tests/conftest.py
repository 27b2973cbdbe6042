"""Shared fixtures: fake connectors and interface providers."""

import threading
import time

import pytest

from peer_discovery.core.data_models import InterfaceAddress
from peer_discovery.core.interface_provider import InterfaceProvider
from peer_discovery.utils.error_handler import ProbeTimeoutError


class FakeConnector:
    """
    Connector double that answers for a fixed set of addresses.

    Tracks how many attempts are running at once so tests can check the
    high-water mark against the concurrency limit.
    """

    def __init__(self, reachable=(), delay=0.0):
        self.reachable = {str(address) for address in reachable}
        self.delay = delay
        self.lock = threading.Lock()
        self.in_flight = 0
        self.peak = 0
        self.calls = []

    def __call__(self, address, port, timeout):
        with self.lock:
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            self.calls.append(address)
        try:
            if self.delay:
                time.sleep(min(self.delay, timeout))
                if self.delay > timeout:
                    raise ProbeTimeoutError(f"{address}:{port} timed out")
            if address not in self.reachable:
                raise ConnectionRefusedError(111, "Connection refused")
        finally:
            with self.lock:
                self.in_flight -= 1


class BlockingConnector:
    """Connector that holds every attempt until release is set."""

    def __init__(self):
        self.release = threading.Event()
        self.started = threading.Semaphore(0)

    def __call__(self, address, port, timeout):
        self.started.release()
        self.release.wait(timeout)
        raise ConnectionRefusedError(111, "Connection refused")


class FakeProvider(InterfaceProvider):
    def __init__(self, addresses=None, error=None):
        self.addresses = addresses or []
        self.error = error
        self.calls = 0

    def get_interface_addresses(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.addresses)


@pytest.fixture
def fake_connector():
    return FakeConnector()


@pytest.fixture
def lan_interface():
    return InterfaceAddress("eth0", "192.168.1.10", 24)
