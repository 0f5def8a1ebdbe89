"""
Unified error handling for chainplan.

Every failure the orchestrator can surface is a ``ChainPlanError`` carrying
an exit code, so CLI commands can map outcomes onto process status without
inspecting exception types.

Exit Codes:
- 0: Success
- 10: Plan/configuration error (cycle, unknown dependency, duplicate step)
- 11: Provider error (ledger submission failure or rejection)
- 12: Validation error (parameter precondition violated)
- 127: Unknown/internal error
- 130: Run cancelled
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Callable, Iterable, TypeVar

import structlog

if TYPE_CHECKING:
    from chainplan.orchestration.models import WorkingState

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    VALIDATION_ERROR = 12
    UNKNOWN_ERROR = 127
    CANCELLED = 130


class ChainPlanError(Exception):
    """Base exception for chainplan errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ChainPlanError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class ProviderError(ChainPlanError):
    """Raised when the ledger or another external service fails."""

    exit_code = ExitCode.PROVIDER_ERROR


class ValidationError(ChainPlanError):
    """Raised for validation failures."""

    exit_code = ExitCode.VALIDATION_ERROR


class PreconditionViolation(ValidationError):
    """A step parameter broke a documented constraint before submission."""


class TransientSubmissionError(ProviderError):
    """Timeout, sequencing conflict or temporary unavailability. Retryable."""


class DeterministicRejection(ProviderError):
    """The operation was rejected by the resource's own logic. Not retryable."""


class PlanError(ConfigurationError):
    """Raised while building a plan, before anything is submitted."""


class CycleDetected(PlanError):
    def __init__(self, steps: Iterable[str]):
        self.steps = list(steps)
        super().__init__(
            f"Dependency cycle between steps: {', '.join(self.steps)}",
            {"steps": self.steps},
        )


class UnknownDependency(PlanError):
    def __init__(self, step: str, dependency: str):
        self.step = step
        self.dependency = dependency
        super().__init__(
            f"Step '{step}' depends on unknown step '{dependency}'",
            {"step": step, "dependency": dependency},
        )


class DuplicateStep(PlanError):
    def __init__(self, step: str):
        self.step = step
        super().__init__(f"Step '{step}' is already recorded", {"step": step})


class RunCancelled(ChainPlanError):
    """The caller cancelled the run between steps."""

    exit_code = ExitCode.CANCELLED


class StepFailed(ChainPlanError):
    """
    A step failed and terminated the run.

    Carries the failing step, the underlying cause and the completed prefix
    of the working state so a caller can see what was already provisioned.
    """

    def __init__(self, step: str, cause: ChainPlanError, state: WorkingState):
        self.step = step
        self.cause = cause
        self.state = state
        super().__init__(
            f"Step '{step}' failed: {cause.message}",
            {"step": step, "cause": type(cause).__name__},
        )

    @property
    def exit_code(self) -> ExitCode:  # type: ignore[override]
        return self.cause.exit_code

    @property
    def completed(self) -> list[str]:
        """Names of steps whose outputs were recorded before the failure."""
        return list(self.state.keys())


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI command functions that provides unified error handling.

    Exit codes:
        - ChainPlanError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except ChainPlanError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=int(e.exit_code),
                        **e.details,
                    )
                from chainplan.cli.ux import error as print_error

                print_error(format_error_message(e))
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return int(e.exit_code)
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return int(ExitCode.CANCELLED)
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=int(ExitCode.UNKNOWN_ERROR),
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return int(ExitCode.UNKNOWN_ERROR)

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: ChainPlanError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
