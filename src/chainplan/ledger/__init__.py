"""Ledger clients: the protocol, an in-memory ledger and a JSON-RPC adapter."""

from chainplan.ledger.artifacts import ArtifactStore, BuildInfo, ContractArtifact
from chainplan.ledger.base import ZERO_ADDRESS, LedgerClient
from chainplan.ledger.jsonrpc import JsonRpcLedgerClient
from chainplan.ledger.simulated import SimulatedLedger

__all__ = [
    "ArtifactStore",
    "BuildInfo",
    "ContractArtifact",
    "JsonRpcLedgerClient",
    "LedgerClient",
    "SimulatedLedger",
    "ZERO_ADDRESS",
]
