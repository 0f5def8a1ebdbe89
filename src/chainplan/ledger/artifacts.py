"""
Compiled contract artifacts.

Reads the Hardhat layout ``artifacts/contracts/<Source>.sol/<Name>.json``
(and Foundry's ``out/<Source>.sol/<Name>.json``) for creation bytecode, and
the matching build-info for explorer source verification.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from chainplan.core.errors import ConfigurationError


@dataclass(frozen=True)
class ContractArtifact:
    name: str
    source_name: str
    bytecode: str
    abi: list
    path: Path


@dataclass(frozen=True)
class BuildInfo:
    """Compiler input needed to verify a contract's source."""

    compiler_version: str
    standard_json_input: Dict[str, Any]


class ArtifactStore:
    """Looks up compiled artifacts by contract name."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._cache: Dict[str, ContractArtifact] = {}

    def get(self, name: str) -> ContractArtifact:
        if name not in self._cache:
            self._cache[name] = self._load(name)
        return self._cache[name]

    def _find(self, name: str) -> Path:
        matches = sorted(
            p for p in self.root.rglob(f"{name}.json") if "build-info" not in p.parts
        )
        if not matches:
            raise ConfigurationError(
                f"No compiled artifact for contract '{name}'", {"root": str(self.root)}
            )
        return matches[0]

    def _load(self, name: str) -> ContractArtifact:
        path = self._find(name)
        with open(path) as f:
            data = json.load(f)

        bytecode = data.get("bytecode")
        if isinstance(bytecode, dict):
            bytecode = bytecode.get("object")
        if not bytecode or bytecode in ("0x", "0x0"):
            raise ConfigurationError(
                f"Artifact for '{name}' has no creation bytecode "
                "(abstract contract or interface?)",
                {"path": str(path)},
            )
        if not bytecode.startswith("0x"):
            bytecode = "0x" + bytecode

        return ContractArtifact(
            name=data.get("contractName", name),
            source_name=data.get("sourceName", f"contracts/{path.parent.name}"),
            bytecode=bytecode,
            abi=data.get("abi", []),
            path=path,
        )

    def build_info(self, name: str) -> Optional[BuildInfo]:
        """Build-info for a Hardhat artifact, or None when none was emitted."""
        artifact = self.get(name)
        debug_file = artifact.path.with_name(f"{artifact.path.stem}.dbg.json")
        if not debug_file.exists():
            return None
        with open(debug_file) as f:
            relative = json.load(f).get("buildInfo")
        if not relative:
            return None
        build_file = (debug_file.parent / relative).resolve()
        if not build_file.exists():
            return None
        with open(build_file) as f:
            data = json.load(f)
        return BuildInfo(
            compiler_version="v" + data.get("solcLongVersion", data.get("solcVersion", "")),
            standard_json_input=data.get("input", {}),
        )
