"""Core modules for chainplan - centralized error definitions."""

from chainplan.core.errors import (
    ChainPlanError,
    ConfigurationError,
    CycleDetected,
    DeterministicRejection,
    DuplicateStep,
    ExitCode,
    PlanError,
    PreconditionViolation,
    ProviderError,
    RunCancelled,
    StepFailed,
    TransientSubmissionError,
    UnknownDependency,
    ValidationError,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "ChainPlanError",
    "ConfigurationError",
    "ProviderError",
    "ValidationError",
    "PreconditionViolation",
    "TransientSubmissionError",
    "DeterministicRejection",
    "PlanError",
    "CycleDetected",
    "UnknownDependency",
    "DuplicateStep",
    "RunCancelled",
    "StepFailed",
    "main_with_error_handling",
    "format_error_message",
]
