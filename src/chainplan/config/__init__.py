"""
chainplan configuration system.

- Pydantic-based settings (CHAINPLAN_* environment variables, .env files)
- Deployment files (YAML) with per-run parameters
- Built-in network profiles
"""

from chainplan.config.deployment import (
    UNIT,
    ExplorerConfig,
    ExternalReferences,
    InitialParameters,
    ProvisioningConfig,
    TokenNames,
    parse_fixed_point,
)
from chainplan.config.loader import ConfigLoader, get_config_path, load_config
from chainplan.config.networks import NETWORKS, NetworkProfile, get_network, list_networks
from chainplan.config.settings import Settings, get_settings

__all__ = [
    "UNIT",
    "ExplorerConfig",
    "ExternalReferences",
    "InitialParameters",
    "ProvisioningConfig",
    "TokenNames",
    "parse_fixed_point",
    "ConfigLoader",
    "get_config_path",
    "load_config",
    "NETWORKS",
    "NetworkProfile",
    "get_network",
    "list_networks",
    "Settings",
    "get_settings",
]
