"""
Error taxonomy and centralized error handling for the Peer Discovery Module.

Per-candidate probe failures are expected and never abort a run. Only
malformed input or configuration and interface enumeration failures do, and
those surface to the caller as a single exception from this module.
"""

from typing import Optional, Any, Dict
from enum import Enum
from dataclasses import dataclass

from .logger import Logger, get_logger


class ErrorType(Enum):
    """Enumeration for different types of errors."""
    VALIDATION_ERROR = "validation_error"
    CONFIGURATION_ERROR = "configuration_error"
    RESOURCE_ERROR = "resource_error"
    INTERFACE_ERROR = "interface_error"


class ErrorSeverity(Enum):
    """Enumeration for error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """
    Context information for error handling.

    Attributes:
        error_type: Type of error that occurred
        severity: Severity level of the error
        operation: Operation that was being performed when error occurred
        component: Component/module where error occurred
        additional_info: Additional context information
    """
    error_type: ErrorType
    severity: ErrorSeverity
    operation: str
    component: str
    additional_info: Dict[str, Any] = None

    def __post_init__(self):
        if self.additional_info is None:
            self.additional_info = {}


class PeerDiscoveryError(Exception):
    """Base exception class for Peer Discovery Module."""

    def __init__(self, message: str, error_context: Optional[ErrorContext] = None):
        super().__init__(message)
        self.error_context = error_context


class ValidationError(PeerDiscoveryError):
    """Exception for malformed input values."""
    pass


class InvalidAddressError(ValidationError):
    """Raised when an address does not parse as IPv4."""
    pass


class InvalidMaskError(ValidationError):
    """Raised when a mask is outside [0, 32] or not contiguous."""
    pass


class ConfigurationError(PeerDiscoveryError):
    """Exception for configuration-related errors."""
    pass


class ProbeTimeoutError(PeerDiscoveryError):
    """A single connection attempt did not complete within its timeout."""
    pass


class ResourceExhaustionError(PeerDiscoveryError):
    """The requested concurrency cannot be served by the process limits."""
    pass


class InterfaceEnumerationError(PeerDiscoveryError):
    """The interface provider failed; the run cannot start."""
    pass


class DiscoveryCancelledError(PeerDiscoveryError):
    """
    A discovery run was cancelled by the caller or hit its deadline.

    Attributes:
        partial_results: DiscoverySet holding the peers confirmed before
            cancellation.
    """

    def __init__(self, message: str, partial_results=None,
                 error_context: Optional[ErrorContext] = None):
        super().__init__(message, error_context)
        self.partial_results = partial_results


class ErrorHandler:
    """
    Centralized error reporting.

    Logs errors at a level matching their severity, keeps per-type counters
    and prints troubleshooting hints. Nothing here retries: a peer that does
    not answer is an ordinary outcome.
    """

    def __init__(self, logger: Optional[Logger] = None):
        """
        Initialize the ErrorHandler.

        Args:
            logger: Logger instance for error reporting
        """
        self.logger = logger or get_logger(__name__)
        self.error_statistics: Dict[ErrorType, int] = {
            error_type: 0 for error_type in ErrorType
        }

    def handle_error(self, error: Exception, context: ErrorContext) -> None:
        """
        Record and report an error.

        Args:
            error: The exception that occurred
            context: Error context information
        """
        self.error_statistics[context.error_type] += 1
        self._log_error(error, context)

        if context.error_type == ErrorType.CONFIGURATION_ERROR:
            self._suggest_configuration_fixes(context)
        elif context.error_type == ErrorType.VALIDATION_ERROR:
            self._suggest_validation_fixes()
        elif context.error_type == ErrorType.RESOURCE_ERROR:
            self._suggest_resource_fixes(context)
        elif context.error_type == ErrorType.INTERFACE_ERROR:
            self._suggest_interface_fixes()

    def _log_error(self, error: Exception, context: ErrorContext) -> None:
        error_msg = f"Error in {context.component}.{context.operation}: {str(error)}"

        if context.severity == ErrorSeverity.CRITICAL:
            self.logger.error(error_msg, exception=error)
        elif context.severity == ErrorSeverity.HIGH:
            self.logger.error(error_msg)
        elif context.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(error_msg)
        else:
            self.logger.debug(error_msg)

    def _suggest_configuration_fixes(self, context: ErrorContext) -> None:
        """Provide configuration error solutions."""
        config_file = context.additional_info.get("config_file")
        self.logger.info("Configuration error solutions:")
        if config_file:
            self.logger.info(f"  • Review {config_file}")
        self.logger.info("  • Port must be between 1 and 65535")
        self.logger.info("  • Timeout must be a positive number of seconds")
        self.logger.info("  • Concurrency limit must be at least 1")
        self.logger.info("  • Check YAML syntax and indentation")

    def _suggest_validation_fixes(self) -> None:
        """Provide validation error solutions."""
        self.logger.info("Validation error solutions:")
        self.logger.info("  • Verify IP addresses are in IPv4 dotted form (e.g. 192.168.1.10)")
        self.logger.info("  • Mask must be a prefix length 0-32 or a contiguous netmask")

    def _suggest_resource_fixes(self, context: ErrorContext) -> None:
        """Provide descriptor limit solutions."""
        limit = context.additional_info.get("descriptor_limit")
        self.logger.info("Resource limit solutions:")
        if limit:
            self.logger.info(f"  • Keep the concurrency limit well below {limit}")
        self.logger.info("  • Raise the open file limit: ulimit -n 4096")

    def _suggest_interface_fixes(self) -> None:
        """Provide interface enumeration solutions."""
        self.logger.info("Interface enumeration solutions:")
        self.logger.info("  • Pass subnets explicitly with --subnet 192.168.1.0/24")
        self.logger.info("  • Check that the process may read network interface data")
