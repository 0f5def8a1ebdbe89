"""
In-memory ledger for dry runs and tests.

Deploys get deterministic addresses derived from the sender and its nonce,
calls are checked against the deployed contracts, and ``initialize``
functions may only succeed once per contract. Faults can be injected per step
to exercise retry and failure handling.
"""

from __future__ import annotations

import asyncio
import hashlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog
from eth_utils import to_checksum_address

from chainplan.core.errors import ChainPlanError, DeterministicRejection
from chainplan.orchestration.models import ConfirmedReceipt, Operation, PendingHandle

logger = structlog.get_logger()

DEFAULT_BALANCE = 100 * 10**18


@dataclass
class _Fault:
    step: Optional[str]
    error: ChainPlanError
    phase: str
    remaining: Optional[int]


@dataclass
class SimulatedContract:
    address: str
    contract: str
    deployer: str
    args: tuple
    calls: List[str] = field(default_factory=list)
    initialized: bool = False


class SimulatedLedger:
    """A LedgerClient that keeps all state in memory."""

    def __init__(
        self,
        balances: Optional[Dict[str, int]] = None,
        *,
        default_balance: int = DEFAULT_BALANCE,
        confirmation_delay: float = 0.0,
    ) -> None:
        self._balances = {k.lower(): v for k, v in (balances or {}).items()}
        self._default_balance = default_balance
        self._confirmation_delay = confirmation_delay
        self._nonces: Dict[str, int] = {}
        self._pending: Dict[str, Operation] = {}
        self._faults: List[_Fault] = []
        self.contracts: Dict[str, SimulatedContract] = {}
        self.submissions: List[Operation] = []
        self.block_number = 0

    def fail(
        self,
        step: Optional[str],
        error: ChainPlanError,
        *,
        times: Optional[int] = None,
        phase: str = "submit",
    ) -> None:
        """
        Make operations of ``step`` (or every step if None) raise ``error``.

        ``phase`` is "submit" or "confirm"; ``times`` limits how often the
        fault fires, None meaning always.
        """
        if phase not in ("submit", "confirm"):
            raise ValueError(f"Unknown phase '{phase}'")
        self._faults.append(_Fault(step=step, error=error, phase=phase, remaining=times))

    def submissions_for(self, step: str) -> List[Operation]:
        return [op for op in self.submissions if op.step == step]

    async def submit(self, operation: Operation) -> PendingHandle:
        self.submissions.append(operation)
        self._raise_fault(operation, "submit")

        sender = operation.sender.lower()
        nonce = self._nonces.get(sender, 0)
        self._nonces[sender] = nonce + 1
        transaction = "0x" + _digest(f"tx:{sender}:{nonce}")
        self._pending[transaction] = operation
        return PendingHandle(transaction=transaction, operation=operation)

    async def await_confirmation(self, handle: PendingHandle) -> ConfirmedReceipt:
        if self._confirmation_delay:
            await asyncio.sleep(self._confirmation_delay)
        self._raise_fault(handle.operation, "confirm")

        operation = self._pending.pop(handle.transaction, None)
        if operation is None:
            raise DeterministicRejection(
                "Unknown transaction", {"transaction": handle.transaction}
            )

        self.block_number += 1
        if operation.is_deploy:
            address = self._create(handle.transaction, operation)
            return ConfirmedReceipt(
                transaction=handle.transaction,
                block_number=self.block_number,
                contract_address=address,
            )

        success = self._call(operation)
        return ConfirmedReceipt(
            transaction=handle.transaction,
            block_number=self.block_number,
            success=success,
        )

    async def current_balance(self, identity: str) -> int:
        return self._balances.get(identity.lower(), self._default_balance)

    def derive_address(self, receipt: ConfirmedReceipt) -> str:
        if not receipt.contract_address:
            raise DeterministicRejection(
                "Receipt carries no contract address", {"transaction": receipt.transaction}
            )
        return receipt.contract_address

    def _create(self, transaction: str, operation: Operation) -> str:
        address = to_checksum_address("0x" + _digest(f"create:{transaction}")[-40:])
        self.contracts[address.lower()] = SimulatedContract(
            address=address,
            contract=operation.contract,
            deployer=operation.sender,
            args=operation.args,
        )
        return address

    def _call(self, operation: Operation) -> bool:
        contract = self.contracts.get((operation.target or "").lower())
        if contract is None or contract.contract != operation.contract:
            logger.warning("simulated_call_reverted", step=operation.step, reason="no contract")
            return False
        function = operation.function or ""
        if function.startswith("initialize("):
            if contract.initialized:
                logger.warning(
                    "simulated_call_reverted", step=operation.step, reason="already initialized"
                )
                return False
            contract.initialized = True
        contract.calls.append(function)
        return True

    def _raise_fault(self, operation: Operation, phase: str) -> None:
        for fault in self._faults:
            if fault.phase != phase or fault.step not in (None, operation.step):
                continue
            if fault.remaining is not None:
                if fault.remaining <= 0:
                    continue
                fault.remaining -= 1
            raise fault.error


def _digest(text: str) -> str:
    return hashlib.sha256(text.encode()).hexdigest()
