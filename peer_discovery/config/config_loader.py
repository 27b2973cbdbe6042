"""
Configuration loader for Peer Discovery Module.
Handles loading and validation of YAML configuration files with fallback to defaults.
"""

import yaml
from typing import Any, List, Optional
from dataclasses import dataclass, field
from pathlib import Path

from ..utils.logger import Logger

DEFAULT_CONFIG_FILE = "discovery_config.yml"


@dataclass
class DiscoveryConfig:
    """Configuration for a discovery run."""
    port: int = 44444
    timeout: float = 0.5
    concurrency_limit: int = 64
    address_filter: str = "private"  # private, ipv4, prefix, any
    prefixes: List[str] = field(default_factory=lambda: ["192.168."])
    exclude_reserved: bool = False
    exclude_local_addresses: bool = False
    min_mask_bits: Optional[int] = 16
    deadline: Optional[float] = None
    verbose: bool = False


class ConfigLoader:
    """
    Loads and validates the YAML discovery configuration.
    Provides fallback to defaults when the file or individual values are invalid.
    """

    VALID_FILTERS = ["private", "ipv4", "prefix", "any"]

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize ConfigLoader.

        Args:
            config_dir: Directory containing configuration files.
                       Defaults to the config directory relative to this file.
        """
        if config_dir is None:
            self.config_dir = Path(__file__).parent
        else:
            self.config_dir = Path(config_dir)

        self.logger = Logger()

    def load_discovery_config(self, config_file: str = DEFAULT_CONFIG_FILE) -> DiscoveryConfig:
        """
        Load discovery configuration from YAML file.

        Args:
            config_file: Name of the configuration file

        Returns:
            DiscoveryConfig object with loaded or default configuration
        """
        config_path = self.config_dir / config_file
        defaults = DiscoveryConfig()

        if not config_path.exists():
            self.logger.warning(f"Discovery config file not found at {config_path}. Using default configuration.")
            return defaults

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            self.logger.error(f"Error parsing discovery config file {config_path}: {e}")
            self.logger.warning("Using default discovery configuration.")
            return defaults
        except OSError as e:
            self.logger.error(f"Could not read discovery config file {config_path}: {e}")
            self.logger.warning("Using default discovery configuration.")
            return defaults

        if not isinstance(config_data, dict) or not isinstance(config_data.get('discovery'), dict):
            self.logger.warning(f"Invalid discovery config structure in {config_path}. Using default configuration.")
            return defaults

        data = config_data['discovery']

        return DiscoveryConfig(
            port=self._validate_port(data.get('port', defaults.port), defaults.port),
            timeout=self._validate_positive_float(data.get('timeout', defaults.timeout), 'timeout', defaults.timeout),
            concurrency_limit=self._validate_positive_int(
                data.get('concurrency_limit', defaults.concurrency_limit), 'concurrency_limit', defaults.concurrency_limit),
            address_filter=self._validate_filter(data.get('address_filter', defaults.address_filter)),
            prefixes=self._validate_prefixes(data.get('prefixes', defaults.prefixes), defaults.prefixes),
            exclude_reserved=self._validate_bool(data.get('exclude_reserved', False), 'exclude_reserved', False),
            exclude_local_addresses=self._validate_bool(
                data.get('exclude_local_addresses', False), 'exclude_local_addresses', False),
            min_mask_bits=self._validate_mask_bits(data.get('min_mask_bits', defaults.min_mask_bits), defaults.min_mask_bits),
            deadline=self._validate_optional_float(data.get('deadline'), 'deadline'),
            verbose=self._validate_bool(data.get('verbose', False), 'verbose', False),
        )

    def _validate_positive_int(self, value: Any, field_name: str, default: int) -> int:
        """
        Validate that a value is a positive integer.

        Args:
            value: Value to validate
            field_name: Name of the field for error messages
            default: Default value to use if validation fails

        Returns:
            Validated integer value or default
        """
        try:
            if isinstance(value, bool):
                raise TypeError(value)
            int_value = int(value)
            if int_value <= 0:
                self.logger.warning(f"Invalid {field_name}: {value}. Must be positive. Using default: {default}")
                return default
            return int_value
        except (ValueError, TypeError):
            self.logger.warning(f"Invalid {field_name}: {value}. Must be an integer. Using default: {default}")
            return default

    def _validate_positive_float(self, value: Any, field_name: str, default: float) -> float:
        try:
            if isinstance(value, bool):
                raise TypeError(value)
            float_value = float(value)
            if float_value <= 0:
                self.logger.warning(f"Invalid {field_name}: {value}. Must be positive. Using default: {default}")
                return default
            return float_value
        except (ValueError, TypeError):
            self.logger.warning(f"Invalid {field_name}: {value}. Must be a number. Using default: {default}")
            return default

    def _validate_optional_float(self, value: Any, field_name: str) -> Optional[float]:
        if value is None:
            return None
        validated = self._validate_positive_float(value, field_name, 0.0)
        return validated or None

    def _validate_port(self, value: Any, default: int) -> int:
        port = self._validate_positive_int(value, 'port', default)
        if port > 65535:
            self.logger.warning(f"Invalid port: {value}. Must be between 1 and 65535. Using default: {default}")
            return default
        return port

    def _validate_filter(self, name: Any) -> str:
        """
        Validate address filter name.

        Args:
            name: Filter name to validate

        Returns:
            Validated filter name or default
        """
        if name not in self.VALID_FILTERS:
            self.logger.warning(f"Invalid address filter: {name}. Must be one of {self.VALID_FILTERS}. Using default: private")
            return "private"
        return name

    def _validate_prefixes(self, prefixes: Any, default: List[str]) -> List[str]:
        if isinstance(prefixes, str):
            prefixes = [prefixes]
        if not isinstance(prefixes, list):
            self.logger.warning(f"Invalid prefixes: {prefixes}. Must be a list. Using default: {default}")
            return list(default)

        valid_prefixes = []
        for prefix in prefixes:
            if isinstance(prefix, str) and prefix.strip():
                valid_prefixes.append(prefix.strip())
            else:
                self.logger.warning(f"Invalid prefix: {prefix}. Skipping.")

        if not valid_prefixes:
            self.logger.warning(f"No valid prefixes found. Using default: {default}")
            return list(default)
        return valid_prefixes

    def _validate_bool(self, value: Any, field_name: str, default: bool) -> bool:
        if isinstance(value, bool):
            return value
        self.logger.warning(f"Invalid {field_name}: {value}. Must be true or false. Using default: {default}")
        return default

    def _validate_mask_bits(self, value: Any, default: Optional[int]) -> Optional[int]:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 32:
            self.logger.warning(f"Invalid min_mask_bits: {value}. Must be 0-32. Using default: {default}")
            return default
        return value

    def create_default_config(self) -> Path:
        """
        Create the default configuration file if it doesn't exist.

        Returns:
            Path of the configuration file
        """
        config_path = self.config_dir / DEFAULT_CONFIG_FILE
        if config_path.exists():
            return config_path

        defaults = DiscoveryConfig()
        default_config = {
            'discovery': {
                'port': defaults.port,
                'timeout': defaults.timeout,
                'concurrency_limit': defaults.concurrency_limit,
                'address_filter': defaults.address_filter,
                'prefixes': list(defaults.prefixes),
                'exclude_reserved': defaults.exclude_reserved,
                'exclude_local_addresses': defaults.exclude_local_addresses,
                'min_mask_bits': defaults.min_mask_bits,
                'deadline': defaults.deadline,
                'verbose': defaults.verbose,
            }
        }

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                yaml.dump(default_config, f, default_flow_style=False, indent=2)
            self.logger.info(f"Created default discovery config at {config_path}")
        except OSError as e:
            self.logger.error(f"Failed to create default discovery config: {e}")
        return config_path
