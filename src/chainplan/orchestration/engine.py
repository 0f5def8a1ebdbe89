"""Run-level state machine: plans, then executes steps strictly in order."""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import structlog

from chainplan.core.errors import (
    ChainPlanError,
    PlanError,
    PreconditionViolation,
    RunCancelled,
    StepFailed,
)
from chainplan.logging import run_context
from chainplan.orchestration.executor import StepExecutor
from chainplan.orchestration.manifest import Manifest, build
from chainplan.orchestration.models import (
    ResourceSpec,
    StepResult,
    StepStatus,
    WorkingState,
)
from chainplan.orchestration.planner import plan

logger = structlog.get_logger()


class RunStatus(StrEnum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class CancellationToken:
    """Lets a caller stop a run between steps."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class ProvisioningRun:
    """One orchestration run and everything it has produced so far."""

    plan: str
    steps: List[ResourceSpec]
    state: WorkingState
    network: Optional[str] = None
    status: RunStatus = RunStatus.NOT_STARTED
    run_id: Optional[str] = None
    position: int = 0
    results: List[StepResult] = field(default_factory=list)
    manifest: Optional[Manifest] = None
    failure: Optional[StepFailed] = None
    duration_seconds: float = 0.0

    @property
    def completed(self) -> bool:
        return self.status is RunStatus.COMPLETED

    @property
    def failed(self) -> bool:
        return self.status is RunStatus.FAILED

    @property
    def current_step(self) -> Optional[ResourceSpec]:
        """The step at the run's position, if any remain."""
        if self.position < len(self.steps):
            return self.steps[self.position]
        return None

    def raise_for_status(self) -> None:
        """Raise the run's StepFailed if it failed."""
        if self.failure is not None:
            raise self.failure


class StateFile:
    """JSON persistence of a run's working state, for resuming."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def save(self, plan_name: str, state: WorkingState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {"plan": plan_name, "state": state.to_dict()}
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w") as f:
            json.dump(data, f, indent=2)
        tmp.replace(self.path)

    def load(self, plan_name: str) -> WorkingState:
        if not self.path.exists():
            return WorkingState()
        with open(self.path) as f:
            data: Dict[str, Any] = json.load(f)
        if data.get("plan") != plan_name:
            raise PlanError(
                f"State file belongs to plan '{data.get('plan')}'",
                {"path": str(self.path), "expected": plan_name},
            )
        return WorkingState.from_dict(data.get("state", {}))


class Orchestrator:
    """
    Drives a plan through NOT_STARTED -> RUNNING -> COMPLETED | FAILED.

    Steps run one at a time; step N+1 is never submitted before step N is
    confirmed. A failed step ends the run with the completed prefix of the
    working state, and no later step is attempted.
    """

    def __init__(
        self,
        executor: StepExecutor,
        *,
        network: Optional[str] = None,
        state_file: Optional[StateFile] = None,
        min_balance: int = 0,
    ) -> None:
        self._executor = executor
        self._network = network
        self._state_file = state_file
        self._min_balance = min_balance

    def prepare(
        self,
        plan_name: str,
        specs: Iterable[ResourceSpec],
        state: Optional[WorkingState] = None,
    ) -> ProvisioningRun:
        """Order the steps. Plan errors surface here, before any submission."""
        ordered = plan(specs)
        state = state if state is not None else WorkingState()
        known = {step.name for step in ordered}
        unknown = [name for name in state if name not in known]
        if unknown:
            raise PlanError(
                "Working state holds steps that are not part of the plan",
                {"plan": plan_name, "steps": unknown},
            )
        return ProvisioningRun(plan=plan_name, steps=ordered, state=state, network=self._network)

    async def run(
        self,
        plan_name: str,
        specs: Iterable[ResourceSpec],
        *,
        state: Optional[WorkingState] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> ProvisioningRun:
        run = self.prepare(plan_name, specs, state)
        return await self.execute(run, cancel=cancel)

    async def execute(
        self, run: ProvisioningRun, *, cancel: Optional[CancellationToken] = None
    ) -> ProvisioningRun:
        if run.status is not RunStatus.NOT_STARTED:
            raise ChainPlanError(
                f"Run of plan '{run.plan}' has already started", {"status": str(run.status)}
            )

        with run_context(run.plan, run.network) as run_id:
            run.run_id = run_id
            return await self._execute(run, cancel)

    async def _execute(
        self, run: ProvisioningRun, cancel: Optional[CancellationToken]
    ) -> ProvisioningRun:
        log = logger.bind(sender=self._executor.sender)
        start = time.monotonic()
        await self._preflight(run, log)

        run.status = RunStatus.RUNNING
        total = len(run.steps)
        log.info("run_started", steps=total, resumed=len(run.state))

        for index, step in enumerate(run.steps):
            run.position = index

            if step.name in run.state:
                run.results.append(
                    StepResult(
                        step=step.name,
                        resource=step.resource,
                        kind=step.kind,
                        status=StepStatus.SUCCESS,
                        output=run.state[step.name],
                        resumed=True,
                        contract=step.contract,
                    )
                )
                log.info("step_resumed", step=step.name)
                continue

            if cancel is not None and cancel.cancelled:
                error = RunCancelled("Run cancelled before step started", {"step": step.name})
                return self._fail(run, step, error, start, log)

            self._executor.notify("on_step_started", step, index + 1, total)
            try:
                result = await self._executor.execute(step, run.state)
            except ChainPlanError as exc:
                return self._fail(run, step, exc, start, log)
            except Exception as exc:
                log.exception("step_crashed", step=step.name, error_type=type(exc).__name__)
                cause = ChainPlanError(
                    f"Unexpected error in step '{step.name}': {exc}",
                    {"error_type": type(exc).__name__},
                )
                return self._fail(run, step, cause, start, log)
            run.results.append(result)

            if not result.success:
                cause = result.error
                if not isinstance(cause, ChainPlanError):
                    cause = ChainPlanError(str(cause))
                return self._fail(run, step, cause, start, log)

            if self._state_file is not None:
                self._state_file.save(run.plan, run.state)

        run.position = total
        run.manifest = build(run.results, plan=run.plan, network=run.network)
        run.status = RunStatus.COMPLETED
        run.duration_seconds = time.monotonic() - start
        log.info(
            "run_completed",
            resources=len(run.manifest.identifiers),
            duration=round(run.duration_seconds, 3),
        )
        return run

    async def _preflight(self, run: ProvisioningRun, log: structlog.stdlib.BoundLogger) -> None:
        sender = self._executor.sender
        balance = await self._executor.ledger.current_balance(sender)
        log.info("submitting_identity", identity=sender, balance=balance)
        if balance < self._min_balance:
            raise PreconditionViolation(
                "Submitting identity balance is below the configured minimum",
                {"identity": sender, "balance": balance, "minimum": self._min_balance},
            )

    def _fail(
        self,
        run: ProvisioningRun,
        step: ResourceSpec,
        cause: ChainPlanError,
        start: float,
        log: structlog.stdlib.BoundLogger,
    ) -> ProvisioningRun:
        run.failure = StepFailed(step.name, cause, run.state.snapshot())
        run.status = RunStatus.FAILED
        run.duration_seconds = time.monotonic() - start
        log.error(
            "run_failed",
            step=step.name,
            cause=type(cause).__name__,
            error=cause.message,
            completed=list(run.state.keys()),
        )
        return run
