"""
Ethereum JSON-RPC ledger client.

Submits through ``eth_sendTransaction`` from an account unlocked on the node
(a local Hardhat/Anvil node, or a signing proxy in front of a public RPC), and
polls ``eth_getTransactionReceipt`` until the transaction is included.
Retries are owned by the step executor, so requests here are sent once.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import structlog
from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from chainplan.clients.base import BaseHTTPClient, PermanentHTTPError, RetryableHTTPError
from chainplan.core.errors import (
    ConfigurationError,
    DeterministicRejection,
    TransientSubmissionError,
)
from chainplan.ledger.artifacts import ArtifactStore
from chainplan.orchestration.models import ConfirmedReceipt, Operation, PendingHandle

logger = structlog.get_logger()

# JSON-RPC error messages that clear up on resubmission
TRANSIENT_MESSAGES = (
    "nonce too low",
    "nonce too high",
    "replacement transaction underpriced",
    "transaction underpriced",
    "already known",
    "known transaction",
    "header not found",
    "rate limit",
)
LIMIT_EXCEEDED = -32005


def is_transient_rpc_error(error: dict[str, Any]) -> bool:
    message = str(error.get("message", "")).lower()
    return error.get("code") == LIMIT_EXCEEDED or any(m in message for m in TRANSIENT_MESSAGES)


def encode_operation(operation: Operation, artifacts: ArtifactStore) -> str:
    """Transaction data for a deploy (bytecode + args) or a call (selector + args)."""
    encoded = encode(list(operation.arg_types), list(operation.args))
    if operation.is_deploy:
        return artifacts.get(operation.contract).bytecode + encoded.hex()
    if not operation.function:
        raise ConfigurationError("Call operation has no function", {"step": operation.step})
    selector = function_signature_to_4byte_selector(operation.function)
    return "0x" + (selector + encoded).hex()


class JsonRpcLedgerClient(BaseHTTPClient):
    """LedgerClient backed by an Ethereum JSON-RPC endpoint."""

    def __init__(
        self,
        url: str,
        artifacts: ArtifactStore,
        *,
        timeout: float = 30.0,
        poll_interval: float = 1.0,
        chain_id: Optional[int] = None,
    ) -> None:
        super().__init__(url, timeout=timeout)
        self._artifacts = artifacts
        self._poll_interval = poll_interval
        self._chain_id = chain_id
        self._request_id = 0

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        try:
            body = await self._send("POST", json=payload)
        except RetryableHTTPError as exc:
            raise TransientSubmissionError(
                "Ledger endpoint unavailable", {"method": method, "error": str(exc)}
            ) from exc
        except PermanentHTTPError as exc:
            raise DeterministicRejection(
                "Ledger endpoint rejected the request", {"method": method, "error": str(exc)}
            ) from exc

        if not isinstance(body, dict):
            raise TransientSubmissionError(
                "Malformed ledger response", {"method": method, "body": str(body)[:200]}
            )
        error = body.get("error")
        if error:
            details = {"method": method, "code": error.get("code"), "error": error.get("message")}
            if is_transient_rpc_error(error):
                logger.warning("rpc_transient_error", **details)
                raise TransientSubmissionError("Transient ledger error", details)
            raise DeterministicRejection("Ledger rejected the operation", details)
        return body.get("result")

    async def check_chain(self) -> int:
        """Fail fast if the endpoint serves a different chain than configured."""
        chain_id = int(await self._rpc("eth_chainId", []), 16)
        if self._chain_id is not None and chain_id != self._chain_id:
            raise ConfigurationError(
                "Endpoint serves an unexpected chain",
                {"expected": self._chain_id, "actual": chain_id},
            )
        return chain_id

    async def submit(self, operation: Operation) -> PendingHandle:
        tx: dict[str, Any] = {
            "from": operation.sender,
            "data": encode_operation(operation, self._artifacts),
        }
        if not operation.is_deploy:
            tx["to"] = operation.target
        transaction = await self._rpc("eth_sendTransaction", [tx])
        logger.debug("rpc_transaction_sent", step=operation.step, transaction=transaction)
        return PendingHandle(transaction=transaction, operation=operation)

    async def await_confirmation(self, handle: PendingHandle) -> ConfirmedReceipt:
        while True:
            receipt = await self._rpc("eth_getTransactionReceipt", [handle.transaction])
            if receipt:
                return parse_receipt(receipt)
            await asyncio.sleep(self._poll_interval)

    async def current_balance(self, identity: str) -> int:
        return int(await self._rpc("eth_getBalance", [identity, "latest"]), 16)

    async def default_account(self) -> str:
        """First unlocked account of the node, as Hardhat's first signer."""
        accounts = await self._rpc("eth_accounts", [])
        if not accounts:
            raise ConfigurationError(
                "No submitting identity configured and the node exposes no accounts"
            )
        return to_checksum_address(accounts[0])

    def derive_address(self, receipt: ConfirmedReceipt) -> str:
        if not receipt.contract_address:
            raise DeterministicRejection(
                "Receipt carries no contract address", {"transaction": receipt.transaction}
            )
        return to_checksum_address(receipt.contract_address)


def parse_receipt(receipt: dict[str, Any]) -> ConfirmedReceipt:
    status = receipt.get("status")
    return ConfirmedReceipt(
        transaction=receipt["transactionHash"],
        block_number=int(receipt.get("blockNumber") or "0x0", 16),
        success=status is None or int(status, 16) == 1,
        contract_address=receipt.get("contractAddress"),
        gas_used=int(receipt.get("gasUsed") or "0x0", 16),
    )
