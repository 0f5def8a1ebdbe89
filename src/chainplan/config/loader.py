"""
Deployment file loading and merging.

Search order:
1. Explicit path (--config flag)
2. .chainplan/deploy.yaml (project root)
3. ~/.chainplan/deploy.yaml (user home)
4. Default configuration

Values missing from the file fall back to CHAINPLAN_* environment settings
and then to the selected network profile.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml

from chainplan.config.deployment import ExplorerConfig, ProvisioningConfig
from chainplan.config.networks import get_network
from chainplan.config.settings import Settings, get_settings
from chainplan.core.errors import ConfigurationError
from chainplan.orchestration.executor import RetryPolicy

logger = structlog.get_logger()


def get_config_path(explicit_path: str | Path | None = None) -> Path | None:
    """
    Find the deployment file to use.

    Returns:
        Path to deployment file or None if not found
    """
    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            return path
        raise ConfigurationError("Deployment file not found", {"path": str(path)})

    cwd_config = Path.cwd() / ".chainplan" / "deploy.yaml"
    if cwd_config.exists():
        return cwd_config

    home_config = Path.home() / ".chainplan" / "deploy.yaml"
    if home_config.exists():
        return home_config

    return None


class ConfigLoader:
    """
    Loads a deployment file and merges it with environment settings.
    """

    def __init__(self, config_path: Path | None = None, settings: Settings | None = None):
        self.config_path = config_path
        self.settings = settings or get_settings()

    def load(self, network: str | None = None) -> ProvisioningConfig:
        data = self._read(self.config_path) if self.config_path else {}
        return self._merge(data, network)

    def _read(self, path: Path) -> dict[str, Any]:
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                "Deployment file is not valid YAML", {"path": str(path), "error": str(e)}
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError("Deployment file must be a mapping", {"path": str(path)})
        logger.debug("loaded_config", path=str(path))
        return data

    def _merge(self, data: dict[str, Any], network: str | None) -> ProvisioningConfig:
        settings = self.settings
        data = dict(data)
        data["network"] = network or data.get("network") or settings.network
        profile = get_network(data["network"])

        data.setdefault("network_endpoint", settings.rpc_url or profile.rpc_url)
        data.setdefault("chain_id", profile.chain_id)
        data.setdefault("submitting_identity", settings.submitting_identity)
        data.setdefault("poll_interval", settings.poll_interval)
        data.setdefault("artifacts_dir", settings.artifacts_dir)

        retry = {
            "max_attempts": settings.max_attempts,
            "base_backoff": settings.base_backoff,
            "max_backoff": settings.max_backoff,
            "confirmation_timeout": settings.confirmation_timeout,
        }
        retry.update(data.get("retry") or {})
        data["retry"] = retry

        config = ProvisioningConfig.from_dict(data)

        explorer = data.get("explorer") or {}
        config.explorer = ExplorerConfig(
            api_url=explorer.get("api_url") or settings.explorer_api_url or profile.explorer_api_url,
            api_key=explorer.get("api_key") or settings.explorer_api_key,
            enabled=bool(explorer.get("enabled", False)),
        )
        return config


def load_config(
    path: str | Path | None = None,
    network: str | None = None,
    settings: Settings | None = None,
) -> ProvisioningConfig:
    """
    Convenience function to load the deployment configuration.

    Args:
        path: Optional explicit deployment file path
        network: Optional network name overriding the file and environment

    Returns:
        ProvisioningConfig instance
    """
    config_path = get_config_path(path)
    return ConfigLoader(config_path, settings=settings).load(network)


def override_retry(config: ProvisioningConfig, **overrides: Any) -> ProvisioningConfig:
    """Apply CLI-level retry overrides, ignoring ``None`` values."""
    values = config.retry.to_dict()
    values.update({k: v for k, v in overrides.items() if v is not None})
    config.retry = RetryPolicy.from_dict(values)
    return config
