"""Orchestration package: ordered, confirmed provisioning steps."""

from chainplan.orchestration.engine import (
    CancellationToken,
    Orchestrator,
    ProvisioningRun,
    RunStatus,
    StateFile,
)
from chainplan.orchestration.executor import RetryPolicy, StepExecutor, StepObserver
from chainplan.orchestration.manifest import Manifest, build, write_manifest
from chainplan.orchestration.models import (
    CallParameters,
    ConfirmedReceipt,
    Operation,
    PendingHandle,
    ResourceSpec,
    StepKind,
    StepResult,
    StepStatus,
    WorkingState,
)
from chainplan.orchestration.planner import DependencyPlanner, plan
from chainplan.orchestration.registry import PlanDefinition, PlanRegistry

__all__ = [
    "CallParameters",
    "CancellationToken",
    "ConfirmedReceipt",
    "DependencyPlanner",
    "Manifest",
    "Operation",
    "Orchestrator",
    "PendingHandle",
    "PlanDefinition",
    "PlanRegistry",
    "ProvisioningRun",
    "ResourceSpec",
    "RetryPolicy",
    "RunStatus",
    "StateFile",
    "StepExecutor",
    "StepKind",
    "StepObserver",
    "StepResult",
    "StepStatus",
    "WorkingState",
    "build",
    "plan",
    "write_manifest",
]
