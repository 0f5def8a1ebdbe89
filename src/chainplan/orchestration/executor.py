"""Step executor: validate, submit, confirm, record."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from chainplan.core.errors import (
    ChainPlanError,
    ConfigurationError,
    DeterministicRejection,
    DuplicateStep,
    PreconditionViolation,
    TransientSubmissionError,
)
from chainplan.orchestration.models import (
    CallParameters,
    ConfirmedReceipt,
    Operation,
    PendingHandle,
    ResourceSpec,
    StepKind,
    StepOutput,
    StepResult,
    StepStatus,
    WorkingState,
)

if TYPE_CHECKING:
    from chainplan.ledger.base import LedgerClient

logger = structlog.get_logger()


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for transient submission failures."""

    max_attempts: int = 3
    base_backoff: float = 1.0
    max_backoff: float = 30.0
    confirmation_timeout: float = 120.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigurationError(
                "max_attempts must be at least 1", {"max_attempts": self.max_attempts}
            )
        if self.base_backoff < 0 or self.max_backoff < 0:
            raise ConfigurationError(
                "Backoff values must not be negative",
                {"base_backoff": self.base_backoff, "max_backoff": self.max_backoff},
            )
        if self.confirmation_timeout <= 0:
            raise ConfigurationError(
                "confirmation_timeout must be positive",
                {"confirmation_timeout": self.confirmation_timeout},
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetryPolicy":
        defaults = cls()
        try:
            values = {
                "max_attempts": int(data.get("max_attempts", defaults.max_attempts)),
                "base_backoff": float(data.get("base_backoff", defaults.base_backoff)),
                "max_backoff": float(data.get("max_backoff", defaults.max_backoff)),
                "confirmation_timeout": float(
                    data.get("confirmation_timeout", defaults.confirmation_timeout)
                ),
            }
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("Invalid retry settings", {"error": str(exc)}) from exc
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_attempts": self.max_attempts,
            "base_backoff": self.base_backoff,
            "max_backoff": self.max_backoff,
            "confirmation_timeout": self.confirmation_timeout,
        }


class StepObserver:
    """Receives structured progress events. Override the hooks you need."""

    def on_step_started(self, step: ResourceSpec, position: int, total: int) -> None:
        pass

    def on_retry(self, step: ResourceSpec, attempt: int, error: Exception, delay: float) -> None:
        pass

    def on_step_result(self, result: StepResult) -> None:
        pass


class StepExecutor:
    """Runs a single step against the ledger and records its output."""

    def __init__(
        self,
        ledger: LedgerClient,
        sender: str,
        retry_policy: Optional[RetryPolicy] = None,
        observers: Iterable[StepObserver] = (),
    ) -> None:
        self._ledger = ledger
        self._sender = sender
        self._policy = retry_policy or RetryPolicy()
        self._observers: List[StepObserver] = list(observers)

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._policy

    @property
    def ledger(self) -> LedgerClient:
        return self._ledger

    @property
    def sender(self) -> str:
        return self._sender

    def add_observer(self, observer: StepObserver) -> None:
        self._observers.append(observer)

    def notify(self, hook: str, *args: Any) -> None:
        for observer in self._observers:
            getattr(observer, hook)(*args)

    async def execute(self, step: ResourceSpec, state: WorkingState) -> StepResult:
        """
        Execute one step and return its result.

        A failed parameter builder means nothing is submitted. Transient
        ledger errors are retried per the retry policy; rejections are not.
        An operation the ledger accepted is never submitted again: later
        attempts keep waiting on the same pending handle.
        Raises DuplicateStep if the step's output is already recorded.
        """
        if step.name in state:
            raise DuplicateStep(step.name)

        log = logger.bind(step=step.name, resource=step.resource)

        try:
            params = step.parameter_builder(state)
            operation = self._operation_for(step, params)
        except PreconditionViolation as exc:
            log.warning("step_precondition_violated", error=exc.message, details=exc.details)
            return self._finish(step, StepStatus.FAILED, error=exc)

        attempts = 0
        handle: Optional[PendingHandle] = None
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._policy.max_attempts),
                wait=wait_exponential(
                    multiplier=self._policy.base_backoff, max=self._policy.max_backoff
                ),
                retry=retry_if_exception_type(TransientSubmissionError),
                before_sleep=self._before_sleep(step),
                reraise=True,
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    # once accepted, the operation is only ever awaited again
                    if handle is None:
                        handle = await self._ledger.submit(operation)
                        log.info("step_submitted", transaction=handle.transaction)
                    receipt = await self._confirm(handle)
            output = self._extract_output(step, params, receipt)
        except ChainPlanError as exc:
            log.error(
                "step_failed",
                error_type=type(exc).__name__,
                error=exc.message,
                attempts=attempts,
            )
            return self._finish(
                step, StepStatus.FAILED, params=params, error=exc, attempts=attempts
            )

        state.record(step.name, output)
        log.info("step_confirmed", block=receipt.block_number, attempts=attempts)
        return self._finish(
            step,
            StepStatus.SUCCESS,
            params=params,
            output=output,
            receipt=receipt,
            attempts=attempts,
        )

    def _operation_for(self, step: ResourceSpec, params: CallParameters) -> Operation:
        if step.kind is not StepKind.DEPLOY and not params.target:
            raise PreconditionViolation(
                f"Step '{step.name}' has no target address", {"function": step.function}
            )
        return Operation(
            step=step.name,
            kind=step.kind,
            contract=step.contract,
            sender=self._sender,
            args=tuple(params.args),
            arg_types=tuple(params.arg_types),
            target=params.target,
            function=step.function,
        )

    async def _confirm(self, handle: PendingHandle) -> ConfirmedReceipt:
        try:
            receipt = await asyncio.wait_for(
                self._ledger.await_confirmation(handle),
                timeout=self._policy.confirmation_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise TransientSubmissionError(
                "Timed out waiting for confirmation",
                {
                    "transaction": handle.transaction,
                    "timeout": self._policy.confirmation_timeout,
                },
            ) from exc
        if not receipt.success:
            raise DeterministicRejection(
                "Operation was reverted", {"transaction": receipt.transaction}
            )
        return receipt

    def _extract_output(
        self, step: ResourceSpec, params: CallParameters, receipt: ConfirmedReceipt
    ) -> StepOutput:
        if step.kind is StepKind.DEPLOY:
            address = self._ledger.derive_address(receipt)
            if not params.recorded:
                return address
            return {"address": address, **params.recorded}
        return {"target": params.target, "transaction": receipt.transaction, **params.recorded}

    def _before_sleep(self, step: ResourceSpec) -> Callable[[RetryCallState], None]:
        def hook(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            logger.warning(
                "step_retry",
                step=step.name,
                attempt=retry_state.attempt_number,
                delay=delay,
                error=str(error),
            )
            self.notify("on_retry", step, retry_state.attempt_number, error, delay)

        return hook

    def _finish(
        self,
        step: ResourceSpec,
        status: StepStatus,
        *,
        params: Optional[CallParameters] = None,
        output: Optional[StepOutput] = None,
        receipt: Optional[ConfirmedReceipt] = None,
        error: Optional[ChainPlanError] = None,
        attempts: int = 0,
    ) -> StepResult:
        result = StepResult(
            step=step.name,
            resource=step.resource,
            kind=step.kind,
            status=status,
            output=output,
            receipt=receipt,
            error=error,
            attempts=attempts,
            contract=step.contract,
            arguments=tuple(zip(params.arg_types, params.args)) if params else (),
        )
        self.notify("on_step_result", result)
        return result
