"""
Deployment configuration: who submits, where, and with which parameters.

A deployment file looks like::

    network: scrollSepolia
    submitting_identity: "0x..."
    retry:
      max_attempts: 3
      base_backoff: 1.0
    initial_parameters:
      mint_ratio: "0.5"          # decimal, or a fixed-point numerator
      beta: "0.5"
      base_token_cap: "1000000"
      ema_sample_interval: 300
    references:
      base_token: "0x..."
      rate_provider: "0x..."
      price_oracle: "0x..."
    platform: "0x..."            # defaults to the submitting identity
    gateway: "0x0000000000000000000000000000000000000000"

Amounts and ratios written as strings or floats are decimals and get scaled
by 10**18. A bare YAML integer is taken as already scaled, so
``base_token_cap: 1000000`` means 10**6 base units, not 10**6 tokens; quote
it (``"1000000"``) to mean whole tokens. Addresses must be quoted: YAML reads
an unquoted ``0x...`` as a hexadecimal integer, which is rejected here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from chainplan.core.errors import ConfigurationError
from chainplan.ledger.base import ZERO_ADDRESS
from chainplan.orchestration.executor import RetryPolicy

# Fixed-point unit used by the protocol's ratios and amounts (18 decimals).
UNIT = 10**18


def parse_fixed_point(value: Any, name: str) -> int:
    """
    Convert a configured amount into its 18-decimal fixed-point integer.

    Integers are taken as already scaled; strings and floats are decimals
    ("0.5" -> 5 * 10**17). Values that do not scale exactly are rejected.
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number", {"value": value})
    if isinstance(value, int):
        return value
    try:
        scaled = Decimal(str(value)) * UNIT
    except InvalidOperation:
        raise ConfigurationError(f"{name} is not a number", {"value": value}) from None
    if scaled != scaled.to_integral_value():
        raise ConfigurationError(
            f"{name} has more than 18 decimal places", {"value": str(value)}
        )
    return int(scaled)


def parse_integer(value: Any, name: str) -> int:
    """A plain integer setting, such as an interval or a chain id."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ConfigurationError(f"{name} must be an integer", {"value": value})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer", {"value": value}) from None


def parse_address(value: Any, name: str) -> Optional[str]:
    """An address setting; checksum validation happens when the plan is built."""
    if value is None or isinstance(value, str):
        return value
    raise ConfigurationError(
        f"{name} must be a quoted address string",
        {"value": hex(value) if isinstance(value, int) else repr(value)},
    )


@dataclass
class InitialParameters:
    """Protocol parameters fixed at provisioning time (fixed-point integers)."""

    mint_ratio: int = UNIT // 2
    beta: int = UNIT // 2
    base_token_cap: int = 1_000_000 * UNIT
    ema_sample_interval: int = 300

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InitialParameters":
        defaults = cls()
        return cls(
            mint_ratio=parse_fixed_point(data.get("mint_ratio", defaults.mint_ratio), "mint_ratio"),
            beta=parse_fixed_point(data.get("beta", defaults.beta), "beta"),
            base_token_cap=parse_fixed_point(
                data.get("base_token_cap", defaults.base_token_cap), "base_token_cap"
            ),
            ema_sample_interval=parse_integer(
                data.get("ema_sample_interval", defaults.ema_sample_interval), "ema_sample_interval"
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mint_ratio": self.mint_ratio,
            "beta": self.beta,
            "base_token_cap": self.base_token_cap,
            "ema_sample_interval": self.ema_sample_interval,
        }


@dataclass
class ExternalReferences:
    """Already-deployed contracts the plan wires in."""

    base_token: Optional[str] = None
    rate_provider: Optional[str] = None
    price_oracle: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExternalReferences":
        return cls(
            base_token=parse_address(data.get("base_token"), "references.base_token"),
            rate_provider=parse_address(data.get("rate_provider"), "references.rate_provider"),
            price_oracle=parse_address(data.get("price_oracle"), "references.price_oracle"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_token": self.base_token,
            "rate_provider": self.rate_provider,
            "price_oracle": self.price_oracle,
        }


@dataclass
class TokenNames:
    synthetic_name: str = "Jack USD"
    synthetic_symbol: str = "jUSD"
    leveraged_name: str = "Jack Leveraged ETH"
    leveraged_symbol: str = "xJETH"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenNames":
        defaults = cls()
        synthetic = data.get("synthetic", {})
        leveraged = data.get("leveraged", {})
        return cls(
            synthetic_name=synthetic.get("name", defaults.synthetic_name),
            synthetic_symbol=synthetic.get("symbol", defaults.synthetic_symbol),
            leveraged_name=leveraged.get("name", defaults.leveraged_name),
            leveraged_symbol=leveraged.get("symbol", defaults.leveraged_symbol),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "synthetic": {"name": self.synthetic_name, "symbol": self.synthetic_symbol},
            "leveraged": {"name": self.leveraged_name, "symbol": self.leveraged_symbol},
        }


@dataclass
class ExplorerConfig:
    """Block explorer used for best-effort source verification."""

    api_url: Optional[str] = None
    api_key: Optional[str] = None
    enabled: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExplorerConfig":
        return cls(
            api_url=data.get("api_url"),
            api_key=data.get("api_key"),
            enabled=bool(data.get("enabled", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        # api_key is a secret and is never written back
        return {"api_url": self.api_url, "enabled": self.enabled}


@dataclass
class ProvisioningConfig:
    """Everything a run needs besides the plan itself."""

    network: str = "hardhat"
    network_endpoint: Optional[str] = None
    chain_id: Optional[int] = None
    submitting_identity: Optional[str] = None
    platform: Optional[str] = None
    gateway: str = ZERO_ADDRESS
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    poll_interval: float = 1.0
    min_balance: int = 0
    initial_parameters: InitialParameters = field(default_factory=InitialParameters)
    references: ExternalReferences = field(default_factory=ExternalReferences)
    tokens: TokenNames = field(default_factory=TokenNames)
    explorer: ExplorerConfig = field(default_factory=ExplorerConfig)
    artifacts_dir: str = "artifacts"

    @property
    def platform_address(self) -> Optional[str]:
        """Platform fee recipient; the submitting identity unless set."""
        return self.platform if self.platform is not None else self.submitting_identity

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProvisioningConfig":
        chain_id = data.get("chain_id")
        return cls(
            network=data.get("network", "hardhat"),
            network_endpoint=data.get("network_endpoint"),
            chain_id=parse_integer(chain_id, "chain_id") if chain_id is not None else None,
            submitting_identity=parse_address(
                data.get("submitting_identity"), "submitting_identity"
            ),
            platform=parse_address(data.get("platform"), "platform"),
            gateway=parse_address(data.get("gateway", ZERO_ADDRESS), "gateway"),
            retry=RetryPolicy.from_dict(data.get("retry", {})),
            poll_interval=float(data.get("poll_interval", 1.0)),
            min_balance=parse_fixed_point(data.get("min_balance", 0), "min_balance"),
            initial_parameters=InitialParameters.from_dict(data.get("initial_parameters", {})),
            references=ExternalReferences.from_dict(data.get("references", {})),
            tokens=TokenNames.from_dict(data.get("tokens", {})),
            explorer=ExplorerConfig.from_dict(data.get("explorer", {})),
            artifacts_dir=data.get("artifacts_dir", "artifacts"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "network": self.network,
            "network_endpoint": self.network_endpoint,
            "chain_id": self.chain_id,
            "submitting_identity": self.submitting_identity,
            "platform": self.platform,
            "gateway": self.gateway,
            "retry": self.retry.to_dict(),
            "poll_interval": self.poll_interval,
            "min_balance": self.min_balance,
            "initial_parameters": self.initial_parameters.to_dict(),
            "references": self.references.to_dict(),
            "tokens": self.tokens.to_dict(),
            "explorer": self.explorer.to_dict(),
            "artifacts_dir": self.artifacts_dir,
        }
