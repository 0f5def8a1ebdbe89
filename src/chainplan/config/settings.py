"""
Application settings using Pydantic.

Provides environment-based configuration loading with CHAINPLAN_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CHAINPLAN_",
        extra="ignore",
    )

    # Target network
    network: str = "hardhat"
    rpc_url: str | None = None
    submitting_identity: str | None = None

    # Explorer verification
    explorer_api_url: str | None = None
    explorer_api_key: str | None = None

    # Artifacts produced by the contract build
    artifacts_dir: str = "artifacts"

    # HTTP client settings
    http_timeout: float = 30.0

    # Submission retry defaults
    max_attempts: int = 3
    base_backoff: float = 1.0
    max_backoff: float = 30.0
    confirmation_timeout: float = 120.0
    poll_interval: float = 1.0

    # Debug
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
