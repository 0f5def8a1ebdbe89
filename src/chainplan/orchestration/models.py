"""Data model shared by the planner, the step executor and the manifest builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple, Union

from chainplan.core.errors import DuplicateStep, PreconditionViolation

# A step produces either an address or a small record of identifiers and scalars.
StepOutput = Union[str, Mapping[str, Any]]


class StepKind(StrEnum):
    """Category of a provisioning step."""

    DEPLOY = "deploy"
    INITIALIZE = "initialize"
    POST_CONFIGURE = "post_configure"


class StepStatus(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class CallParameters:
    """Concrete parameters produced by a step's parameter builder."""

    args: Tuple[Any, ...] = ()
    arg_types: Tuple[str, ...] = ()
    target: Optional[str] = None
    recorded: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if len(self.args) != len(self.arg_types):
            raise PreconditionViolation(
                "Argument count does not match argument types",
                {"args": len(self.args), "arg_types": len(self.arg_types)},
            )


def no_parameters(state: "WorkingState") -> CallParameters:
    return CallParameters()


@dataclass(frozen=True)
class ResourceSpec:
    """Static description of one provisioning step."""

    name: str
    kind: StepKind
    resource: str
    contract: str
    depends_on: Tuple[str, ...] = ()
    parameter_builder: Callable[["WorkingState"], CallParameters] = no_parameters
    function: Optional[str] = None
    description: str = ""

    def __post_init__(self) -> None:
        if self.kind is not StepKind.DEPLOY and not self.function:
            raise ValueError(f"Step '{self.name}' calls a function but names none")


@dataclass(frozen=True)
class Operation:
    """A state-changing operation handed to the ledger client."""

    step: str
    kind: StepKind
    contract: str
    sender: str
    args: Tuple[Any, ...] = ()
    arg_types: Tuple[str, ...] = ()
    target: Optional[str] = None
    function: Optional[str] = None

    @property
    def is_deploy(self) -> bool:
        return self.kind is StepKind.DEPLOY


@dataclass(frozen=True)
class PendingHandle:
    """Reference to a submitted, not yet confirmed, operation."""

    transaction: str
    operation: Operation


@dataclass(frozen=True)
class ConfirmedReceipt:
    """Durable confirmation of a submitted operation."""

    transaction: str
    block_number: int
    success: bool = True
    contract_address: Optional[str] = None
    gas_used: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction": self.transaction,
            "block_number": self.block_number,
            "success": self.success,
            "contract_address": self.contract_address,
            "gas_used": self.gas_used,
        }


class WorkingState(Mapping[str, StepOutput]):
    """
    Append-only mapping from step name to the output it produced.

    Owned by a single run. Entries are added, never removed or overwritten.
    """

    def __init__(self, initial: Optional[Mapping[str, StepOutput]] = None) -> None:
        self._outputs: Dict[str, StepOutput] = {}
        for name, output in (initial or {}).items():
            self.record(name, output)

    def __getitem__(self, name: str) -> StepOutput:
        return self._outputs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._outputs)

    def __len__(self) -> int:
        return len(self._outputs)

    def record(self, name: str, output: StepOutput) -> None:
        if name in self._outputs:
            raise DuplicateStep(name)
        if isinstance(output, Mapping):
            output = MappingProxyType(dict(output))
        self._outputs[name] = output

    def address(self, name: str) -> str:
        """Address produced by a deploy step, for use in later parameters."""
        output = self._outputs.get(name)
        if output is None:
            raise PreconditionViolation(
                f"Output of step '{name}' is not available", {"step": name}
            )
        if isinstance(output, str):
            return output
        target = output.get("address") or output.get("target")
        if not target:
            raise PreconditionViolation(
                f"Step '{name}' produced no address", {"step": name}
            )
        return target

    def snapshot(self) -> "WorkingState":
        return WorkingState(self._outputs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            name: output if isinstance(output, str) else dict(output)
            for name, output in self._outputs.items()
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WorkingState":
        return cls(data)

    def __repr__(self) -> str:
        return f"WorkingState({self.to_dict()!r})"


@dataclass(frozen=True)
class StepResult:
    """Outcome of executing one step. Immutable once recorded."""

    step: str
    resource: str
    kind: StepKind
    status: StepStatus
    output: Optional[StepOutput] = None
    receipt: Optional[ConfirmedReceipt] = None
    error: Optional[Exception] = None
    attempts: int = 0
    resumed: bool = False
    contract: str = ""
    arguments: Tuple[Tuple[str, Any], ...] = ()

    @property
    def success(self) -> bool:
        return self.status is StepStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        output = self.output
        if output is not None and not isinstance(output, str):
            output = dict(output)
        return {
            "step": self.step,
            "resource": self.resource,
            "kind": str(self.kind),
            "status": str(self.status),
            "output": output,
            "receipt": self.receipt.to_dict() if self.receipt else None,
            "error": str(self.error) if self.error else None,
            "attempts": self.attempts,
            "resumed": self.resumed,
            "contract": self.contract,
            "arguments": [{"type": t, "value": v} for t, v in self.arguments],
        }
