"""
JSON Report Generator for Peer Discovery Module.

This module writes DiscoverySet results to timestamped JSON files, with
collision handling for runs finishing within the same second.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

from ..core.data_models import DiscoverySet
from .logger import get_logger
from .network_utils import ip_sort_key


class JSONReporter:
    """
    Handles generation of JSON reports from discovery runs.

    This class is responsible for:
    - Converting a DiscoverySet and its statistics to JSON format
    - Managing output file naming with timestamp-based collision handling
    """

    def __init__(self, output_directory: str = "peer_discovery/results"):
        """
        Initialize the JSON reporter.

        Args:
            output_directory: Directory where JSON reports will be saved
        """
        self.output_directory = Path(output_directory)
        self.logger = get_logger(__name__)

        self.output_directory.mkdir(parents=True, exist_ok=True)

    def generate_report(self, discovery_set: DiscoverySet, started_at: Optional[datetime] = None,
                        configuration: Optional[Dict[str, Any]] = None) -> str:
        """
        Generate a JSON report for a discovery run.

        Args:
            discovery_set: Result of DiscoveryOrchestrator.discover()
            started_at: When the run started (defaults to now)
            configuration: Parameters the run used

        Returns:
            str: Path to the generated JSON file

        Raises:
            ValueError: If discovery_set is None
            OSError: If file cannot be written
        """
        if discovery_set is None:
            raise ValueError("Discovery set cannot be None")

        started_at = started_at or datetime.now()
        json_data = self.to_json_format(discovery_set, started_at, configuration or {})

        filepath = self._handle_file_collision(
            self.output_directory / self._generate_filename(started_at))

        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(json_data, f, indent=2, ensure_ascii=False, default=str)
        except OSError as e:
            self.logger.error(f"Failed to write JSON report to {filepath}: {e}")
            raise

        self.logger.info(f"JSON report successfully generated: {filepath}")
        return str(filepath)

    def to_json_format(self, discovery_set: DiscoverySet, started_at: datetime,
                       configuration: Dict[str, Any]) -> Dict[str, Any]:
        """
        Convert a DiscoverySet to a JSON-serializable dictionary.

        Args:
            discovery_set: Discovery result
            started_at: When the run started
            configuration: Parameters the run used

        Returns:
            Dict containing JSON-serializable report data
        """
        statistics = discovery_set.statistics

        report = {
            "scan_metadata": {
                "timestamp": started_at.isoformat(),
                "status": discovery_set.status.value,
                "duration": round(statistics.duration, 3),
                "configuration": configuration,
            },
            "subnets": {
                "scanned": statistics.subnets_scanned,
                "skipped": statistics.subnets_skipped,
            },
            "statistics": {
                "candidates_probed": statistics.candidates_probed,
                "reachable": statistics.reachable,
                "unreachable": statistics.unreachable,
                "peak_in_flight": statistics.peak_in_flight,
            },
            "peers": [
                {
                    "address": peer.address,
                    "port": peer.port,
                    "interface": peer.interface_name,
                    "subnet": peer.subnet,
                    "connect_time_ms": round(peer.elapsed * 1000, 1),
                }
                for peer in discovery_set.peers()
            ],
        }

        if discovery_set.diagnostics:
            diagnostics = sorted(discovery_set.diagnostics, key=lambda r: ip_sort_key(r.address))
            report["diagnostics"] = [
                {"address": result.address, "error": result.error} for result in diagnostics
            ]

        return report

    def _generate_filename(self, timestamp: datetime) -> str:
        # Format: peer_discovery_YYYYMMDD_HHMMSS.json
        return f"peer_discovery_{timestamp.strftime('%Y%m%d_%H%M%S')}.json"

    def _handle_file_collision(self, filepath: Path) -> Path:
        """
        Handle filename collisions by adding incremental suffix.

        Args:
            filepath: Original file path

        Returns:
            Path: Unique file path
        """
        if not filepath.exists():
            return filepath

        base_name = filepath.stem
        extension = filepath.suffix

        for counter in range(1, 1000):
            new_filepath = filepath.parent / f"{base_name}_{counter:03d}{extension}"
            if not new_filepath.exists():
                self.logger.info(f"File collision detected, using filename: {new_filepath.name}")
                return new_filepath

        raise OSError(f"Too many file collisions for {filepath}")
