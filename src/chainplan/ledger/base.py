"""Ledger client protocol consumed by the step executor."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from chainplan.orchestration.models import ConfirmedReceipt, Operation, PendingHandle

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@runtime_checkable
class LedgerClient(Protocol):
    """
    The four operations the orchestrator needs from a ledger.

    Implementations signal retryable failures with
    ``TransientSubmissionError`` and rejections by the resource's own logic
    with ``DeterministicRejection``.
    """

    async def submit(self, operation: Operation) -> PendingHandle:
        """Submit a state-changing operation."""
        ...

    async def await_confirmation(self, handle: PendingHandle) -> ConfirmedReceipt:
        """Wait until the operation's effect is durable."""
        ...

    async def current_balance(self, identity: str) -> int:
        """Balance of an identity in the ledger's smallest unit."""
        ...

    def derive_address(self, receipt: ConfirmedReceipt) -> str:
        """Identifier of the resource created by a confirmed deploy."""
        ...
