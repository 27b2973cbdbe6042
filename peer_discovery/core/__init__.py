"""
Core components for peer discovery functionality.
"""

from .data_models import (
    AddressFamily,
    DiscoveryStatus,
    InterfaceAddress,
    ProbeResult,
    ProbeBatchResult,
    PeerCandidate,
    DiscoveryStatistics,
    DiscoverySet
)
from .address_space import AddressSpace, CandidateSequence, increment_address
from .probe_pool import ProbeWorkerPool
from .orchestrator import DiscoveryOrchestrator

__all__ = [
    'AddressFamily',
    'DiscoveryStatus',
    'InterfaceAddress',
    'ProbeResult',
    'ProbeBatchResult',
    'PeerCandidate',
    'DiscoveryStatistics',
    'DiscoverySet',
    'AddressSpace',
    'CandidateSequence',
    'increment_address',
    'ProbeWorkerPool',
    'DiscoveryOrchestrator'
]
