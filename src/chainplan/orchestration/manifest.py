"""Manifest builder: the final record of a completed provisioning run."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from chainplan.orchestration.models import StepKind, StepOutput, StepResult


@dataclass(frozen=True)
class Manifest:
    """Ordered step results plus the identifiers they produced."""

    plan: str
    network: Optional[str]
    results: Tuple[StepResult, ...]
    identifiers: Mapping[str, str]
    outputs: Mapping[str, StepOutput]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan,
            "network": self.network,
            "identifiers": dict(self.identifiers),
            "steps": [result.to_dict() for result in self.results],
        }


def _address_of(output: StepOutput) -> Optional[str]:
    if isinstance(output, str):
        return output
    return output.get("address")


def build(
    results: Iterable[StepResult],
    *,
    plan: str = "",
    network: Optional[str] = None,
) -> Manifest:
    """Aggregate step results, in plan order, into a manifest."""
    ordered = tuple(results)
    identifiers: Dict[str, str] = {}
    outputs: Dict[str, StepOutput] = {}

    for result in ordered:
        if result.output is None:
            continue
        outputs[result.step] = result.output
        if result.kind is StepKind.DEPLOY:
            address = _address_of(result.output)
            if address:
                identifiers[result.resource] = address

    return Manifest(
        plan=plan,
        network=network,
        results=ordered,
        identifiers=identifiers,
        outputs=outputs,
    )


def write_manifest(manifest: Manifest, path: Path) -> Path:
    """Write the manifest as JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(manifest.to_dict(), f, indent=2)
        f.write("\n")
    return path


def load_manifest(path: Path) -> Dict[str, Any]:
    """Load a manifest written by ``write_manifest``."""
    with open(path) as f:
        return json.load(f)
