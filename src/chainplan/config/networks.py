"""
Built-in network profiles.

Mirrors the networks a Stable Jack deployment targets: a local development
node and Scroll Sepolia with its Scrollscan explorer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from chainplan.core.errors import ConfigurationError


@dataclass(frozen=True)
class NetworkProfile:
    """Endpoint and explorer settings for one target network."""

    name: str
    rpc_url: str
    chain_id: int
    explorer_api_url: Optional[str] = None
    explorer_browser_url: Optional[str] = None


NETWORKS: Dict[str, NetworkProfile] = {
    "hardhat": NetworkProfile(
        name="hardhat",
        rpc_url="http://127.0.0.1:8545",
        chain_id=31337,
    ),
    "scrollSepolia": NetworkProfile(
        name="scrollSepolia",
        rpc_url="https://scroll-sepolia-rpc.publicnode.com",
        chain_id=534351,
        explorer_api_url="https://api-sepolia.scrollscan.com/api",
        explorer_browser_url="https://sepolia.scrollscan.com",
    ),
}


def get_network(name: str) -> NetworkProfile:
    try:
        return NETWORKS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown network '{name}'", {"known": ", ".join(sorted(NETWORKS))}
        ) from None


def list_networks() -> List[str]:
    return sorted(NETWORKS)
