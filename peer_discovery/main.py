"""
Main entry point for the Peer Discovery Module.

This module provides the command-line interface for the discovery tool,
including argument parsing, configuration merging, and graceful cancellation
on SIGINT/SIGTERM.
"""

import argparse
import signal
import sys
import threading
from dataclasses import asdict, replace
from datetime import datetime
from pathlib import Path
from typing import Optional

from . import __version__
from .config.config_loader import ConfigLoader, DiscoveryConfig
from .core.address_filters import FILTER_NAMES
from .core.data_models import DiscoverySet, DiscoveryStatus
from .core.interface_provider import InterfaceProvider, PsutilInterfaceProvider, StaticInterfaceProvider
from .core.orchestrator import DiscoveryOrchestrator
from .utils.error_handler import PeerDiscoveryError, ValidationError
from .utils.json_reporter import JSONReporter
from .utils.logger import LogLevel, get_logger, set_log_level

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


class PeerDiscoveryApp:
    """
    Main application class for Peer Discovery Module.

    Handles CLI interface, configuration and application lifecycle.
    """

    def __init__(self, install_signal_handlers: bool = True):
        """
        Initialize the application.

        Args:
            install_signal_handlers: Register SIGINT/SIGTERM handlers
        """
        self.logger = get_logger(__name__)
        self.orchestrator: Optional[DiscoveryOrchestrator] = None
        self.cancel_event = threading.Event()

        if install_signal_handlers:
            signal.signal(signal.SIGINT, self._signal_handler)
            signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum: int, frame) -> None:
        """
        First signal cancels the run and keeps partial results; a second one
        terminates immediately.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        signal_names = {signal.SIGINT: "SIGINT", signal.SIGTERM: "SIGTERM"}
        signal_name = signal_names.get(signum, f"Signal {signum}")

        if not self.cancel_event.is_set():
            self.logger.warning(f"Received {signal_name} - cancelling discovery, partial results will be kept...")
            self.cancel_event.set()
        else:
            self.logger.error("Force shutdown requested - terminating immediately")
            sys.exit(EXIT_ERROR)

    def build_config(self, args: argparse.Namespace) -> DiscoveryConfig:
        """
        Load the YAML configuration and apply command line overrides.

        Args:
            args: Parsed command line arguments

        Returns:
            DiscoveryConfig for this run
        """
        if args.config_dir:
            config_path = Path(args.config_dir)
            if not config_path.is_dir():
                raise ValidationError(f"Configuration directory does not exist: {args.config_dir}")
            config = ConfigLoader(str(config_path)).load_discovery_config()
        else:
            config = ConfigLoader().load_discovery_config()

        overrides = {}
        if args.port is not None:
            overrides["port"] = args.port
        if args.timeout is not None:
            overrides["timeout"] = args.timeout
        if args.concurrency is not None:
            overrides["concurrency_limit"] = args.concurrency
        if args.filter is not None:
            overrides["address_filter"] = args.filter
        if args.prefix:
            overrides["prefixes"] = args.prefix
            overrides.setdefault("address_filter", "prefix")
        if args.subnet:
            # Explicit subnets are probed whatever their range unless a filter is named
            overrides.setdefault("address_filter", "any")
        if args.exclude_reserved:
            overrides["exclude_reserved"] = True
        if args.exclude_self:
            overrides["exclude_local_addresses"] = True
        if args.deadline is not None:
            overrides["deadline"] = args.deadline
        if args.verbose:
            overrides["verbose"] = True

        return replace(config, **overrides)

    def build_provider(self, args: argparse.Namespace) -> InterfaceProvider:
        if args.subnet:
            self.logger.info(f"Using explicit subnets: {', '.join(args.subnet)}")
            return StaticInterfaceProvider(args.subnet)
        return PsutilInterfaceProvider(logger=self.logger)

    def run(self, args: argparse.Namespace) -> int:
        """
        Run the peer discovery application.

        Args:
            args: Parsed command line arguments

        Returns:
            int: Exit code (0 completed, 1 error, 130 cancelled)
        """
        try:
            config = self.build_config(args)
            provider = self.build_provider(args)

            self.orchestrator = DiscoveryOrchestrator(
                config=config,
                interface_provider=provider,
                logger=self.logger,
            )

            started_at = datetime.now()
            discovery_set = self.orchestrator.discover(cancel_event=self.cancel_event)
            if args.subnet and discovery_set.statistics.subnets_skipped:
                self.logger.warning(
                    "Explicit subnet(s) rejected by the address filter: "
                    f"{', '.join(discovery_set.statistics.subnets_skipped)}")

            if not args.no_report:
                self._write_report(args.output_dir, discovery_set, started_at, config)

            if discovery_set.status == DiscoveryStatus.CANCELLED:
                self.logger.warning(f"Discovery cancelled with {len(discovery_set)} peer(s) confirmed")
                return EXIT_CANCELLED

            self.logger.success(f"Peer discovery completed: {len(discovery_set)} peer(s) found")
            return EXIT_OK

        except PeerDiscoveryError as e:
            self.logger.error(f"Peer discovery failed: {str(e)}")
            return EXIT_ERROR
        except KeyboardInterrupt:
            self.logger.warning("Discovery interrupted by user")
            return EXIT_CANCELLED

    def _write_report(self, output_dir: Optional[str], discovery_set: DiscoverySet,
                      started_at: datetime, config: DiscoveryConfig) -> None:
        output_path = Path(output_dir) if output_dir else Path(__file__).parent / "results"
        try:
            reporter = JSONReporter(str(output_path))
            report_path = reporter.generate_report(discovery_set, started_at, asdict(config))
        except OSError as e:
            self.logger.error(f"Cannot write report to {output_path}: {str(e)}")
            return
        self.logger.info(f"Report saved to: {report_path}")


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the command line argument parser.

    Returns:
        argparse.ArgumentParser: Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="peer_discovery",
        description="Peer Discovery Module - find running peers on the local network with bounded TCP probes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m peer_discovery                              # Probe private subnets of all interfaces
  python -m peer_discovery --subnet 192.168.1.0/24      # Probe an explicit subnet
  python -m peer_discovery --port 5000 --timeout 0.3    # Custom port and timeout
  python -m peer_discovery --concurrency 128            # More simultaneous attempts
  python -m peer_discovery --prefix 10.0.               # Only subnets starting with 10.0.
  python -m peer_discovery --deadline 30 --no-report    # Stop after 30 seconds, no JSON file
        """
    )

    parser.add_argument(
        "--config-dir",
        type=str,
        help="Directory containing discovery_config.yml. Defaults to peer_discovery/config/"
    )

    parser.add_argument(
        "--output-dir",
        type=str,
        help="Directory for output JSON reports. Defaults to peer_discovery/results/"
    )

    parser.add_argument(
        "--no-report",
        action="store_true",
        help="Do not write a JSON report"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port peers listen on (default 44444)"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        help="Per-candidate connection timeout in seconds (default 0.5)"
    )

    parser.add_argument(
        "--concurrency", "-c",
        type=int,
        help="Maximum simultaneous connection attempts (default 64)"
    )

    parser.add_argument(
        "--subnet", "-s",
        action="append",
        metavar="CIDR",
        help="Probe this subnet instead of the host interfaces (repeatable)"
    )

    parser.add_argument(
        "--filter",
        choices=list(FILTER_NAMES),
        help="Which interface subnets to probe (default private)"
    )

    parser.add_argument(
        "--prefix",
        action="append",
        help="Address prefix pattern such as 192.168. (repeatable, implies --filter prefix)"
    )

    parser.add_argument(
        "--exclude-reserved",
        action="store_true",
        help="Do not probe network and broadcast addresses"
    )

    parser.add_argument(
        "--exclude-self",
        action="store_true",
        help="Do not probe this host's own addresses"
    )

    parser.add_argument(
        "--deadline",
        type=float,
        help="Stop the whole run after this many seconds"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging and keep unreachable results in the report"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Peer Discovery Module {__version__}"
    )

    return parser


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for the Peer Discovery Module.

    Args:
        argv: Argument list, defaults to sys.argv[1:]

    Returns:
        int: Exit code
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        set_log_level(LogLevel.DEBUG)

    app = PeerDiscoveryApp()
    return app.run(args)


if __name__ == "__main__":
    sys.exit(main())
