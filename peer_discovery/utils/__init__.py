"""
Utility functions and helper classes.
"""

from .logger import Logger, LogLevel, set_log_level, get_logger
from .error_handler import (
    ErrorHandler, ErrorContext, ErrorType, ErrorSeverity,
    PeerDiscoveryError, ValidationError, InvalidAddressError, InvalidMaskError,
    ConfigurationError, ProbeTimeoutError, ResourceExhaustionError,
    InterfaceEnumerationError, DiscoveryCancelledError
)
from . import network_utils

__all__ = [
    'Logger',
    'LogLevel',
    'set_log_level',
    'get_logger',
    'ErrorHandler',
    'ErrorContext',
    'ErrorType',
    'ErrorSeverity',
    'PeerDiscoveryError',
    'ValidationError',
    'InvalidAddressError',
    'InvalidMaskError',
    'ConfigurationError',
    'ProbeTimeoutError',
    'ResourceExhaustionError',
    'InterfaceEnumerationError',
    'DiscoveryCancelledError',
    'network_utils'
]
