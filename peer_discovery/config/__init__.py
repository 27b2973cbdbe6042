"""
Configuration module for Peer Discovery.
Provides configuration loading and validation for discovery runs.
"""

from .config_loader import ConfigLoader, DiscoveryConfig

__all__ = ['ConfigLoader', 'DiscoveryConfig']
