"""
Models for explorer verification of a provisioned system.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class VerificationOutcome(Enum):
    VERIFIED = "verified"
    ALREADY_VERIFIED = "already_verified"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DeployedContract:
    """A contract from the manifest that can be submitted for verification."""

    resource: str
    contract: str
    address: str
    arguments: Tuple[Tuple[str, Any], ...] = ()

    @classmethod
    def from_step(cls, step: Dict[str, Any]) -> Optional["DeployedContract"]:
        """Build from a manifest step entry; None for non-deploy or failed steps."""
        if step.get("kind") != "deploy" or step.get("status") != "success":
            return None
        output = step.get("output")
        address = output if isinstance(output, str) else (output or {}).get("address")
        if not address:
            return None
        return cls(
            resource=step["resource"],
            contract=step.get("contract", ""),
            address=address,
            arguments=tuple((a["type"], a["value"]) for a in step.get("arguments", [])),
        )


@dataclass
class ResourceVerification:
    """Result of verifying a single deployed contract."""

    resource: str
    address: str
    outcome: VerificationOutcome
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome in (VerificationOutcome.VERIFIED, VerificationOutcome.ALREADY_VERIFIED)


@dataclass
class VerificationReport:
    """Per-resource outcomes. Reported alongside, never instead of, the run status."""

    explorer_url: str
    results: List[ResourceVerification] = field(default_factory=list)

    @property
    def all_verified(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failed(self) -> List[ResourceVerification]:
        return [r for r in self.results if r.outcome is VerificationOutcome.FAILED]

    @property
    def verified_count(self) -> int:
        return sum(1 for r in self.results if r.ok)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "explorer_url": self.explorer_url,
            "results": [
                {
                    "resource": r.resource,
                    "address": r.address,
                    "outcome": r.outcome.value,
                    "detail": r.detail,
                }
                for r in self.results
            ],
        }
