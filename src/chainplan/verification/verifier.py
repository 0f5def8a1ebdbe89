"""
Explorer source verification.

Submits every deployed contract of a manifest to an Etherscan-compatible
explorer. This runs after a completed run and is best-effort: failures end up
in the report and never change the run's own outcome.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Union

import structlog
from circuitbreaker import CircuitBreakerError
from eth_abi import encode

from chainplan.clients.base import PermanentHTTPError, RetryableHTTPError
from chainplan.clients.explorer import ALREADY_VERIFIED, ExplorerClient
from chainplan.core.errors import ChainPlanError
from chainplan.ledger.artifacts import ArtifactStore
from chainplan.orchestration.manifest import Manifest

from .models import (
    DeployedContract,
    ResourceVerification,
    VerificationOutcome,
    VerificationReport,
)

logger = structlog.get_logger()

PENDING = "pending"
PASSED = "pass"


def deployed_contracts(manifest: Union[Manifest, Dict[str, Any]]) -> List[DeployedContract]:
    """Deployed contracts of a manifest, in plan order."""
    data = manifest.to_dict() if isinstance(manifest, Manifest) else manifest
    contracts = []
    for step in data.get("steps", []):
        contract = DeployedContract.from_step(step)
        if contract is not None:
            contracts.append(contract)
    return contracts


class ManifestVerifier:
    """
    Verifies a manifest's contracts on a block explorer.

    Uses the Hardhat build-info of each contract as the standard JSON input.
    """

    def __init__(
        self,
        explorer: ExplorerClient,
        artifacts: ArtifactStore,
        explorer_url: str = "",
        *,
        poll_interval: float = 5.0,
        max_polls: int = 12,
    ):
        self.explorer = explorer
        self.artifacts = artifacts
        self.explorer_url = explorer_url
        self.poll_interval = poll_interval
        self.max_polls = max_polls

    async def verify_manifest(
        self, manifest: Union[Manifest, Dict[str, Any]]
    ) -> VerificationReport:
        report = VerificationReport(explorer_url=self.explorer_url)
        for contract in deployed_contracts(manifest):
            report.results.append(await self.verify_contract(contract))
        logger.info(
            "verification_finished",
            verified=report.verified_count,
            failed=len(report.failed),
            total=len(report.results),
        )
        return report

    async def verify_contract(self, contract: DeployedContract) -> ResourceVerification:
        try:
            build_info = self.artifacts.build_info(contract.contract)
        except ChainPlanError as e:
            return self._result(contract, VerificationOutcome.SKIPPED, e.message)
        if build_info is None:
            return self._result(contract, VerificationOutcome.SKIPPED, "no build info")

        types = [t for t, _ in contract.arguments]
        values = [v for _, v in contract.arguments]

        try:
            artifact = self.artifacts.get(contract.contract)
            guid = await self.explorer.verify_source(
                address=contract.address,
                contract_name=f"{artifact.source_name}:{artifact.name}",
                compiler_version=build_info.compiler_version,
                standard_json_input=build_info.standard_json_input,
                constructor_arguments=encode(types, values).hex(),
            )
            return await self._await_verdict(contract, guid)
        except ChainPlanError as e:
            result = str(e.details.get("result", e.message))
            if ALREADY_VERIFIED in result.lower():
                return self._result(contract, VerificationOutcome.ALREADY_VERIFIED, result)
            return self._result(contract, VerificationOutcome.FAILED, result)
        except (RetryableHTTPError, PermanentHTTPError, CircuitBreakerError) as e:
            logger.warning("verification_request_failed", resource=contract.resource, error=str(e))
            return self._result(contract, VerificationOutcome.FAILED, str(e))
        except Exception as e:
            logger.exception(
                "verification_error", resource=contract.resource, error_type=type(e).__name__
            )
            return self._result(
                contract, VerificationOutcome.FAILED, f"{type(e).__name__}: {e}"
            )

    async def _await_verdict(self, contract: DeployedContract, guid: str) -> ResourceVerification:
        status = ""
        for _ in range(self.max_polls):
            status = await self.explorer.check_status(guid)
            lowered = status.lower()
            if ALREADY_VERIFIED in lowered:
                return self._result(contract, VerificationOutcome.ALREADY_VERIFIED, status)
            if lowered.startswith(PASSED):
                return self._result(contract, VerificationOutcome.VERIFIED, status)
            if PENDING not in lowered:
                return self._result(contract, VerificationOutcome.FAILED, status)
            await asyncio.sleep(self.poll_interval)
        return self._result(contract, VerificationOutcome.FAILED, f"still pending: {status}")

    def _result(
        self, contract: DeployedContract, outcome: VerificationOutcome, detail: str
    ) -> ResourceVerification:
        if outcome is VerificationOutcome.FAILED:
            logger.warning(
                "verification_failed", resource=contract.resource, detail=detail
            )
        return ResourceVerification(
            resource=contract.resource,
            address=contract.address,
            outcome=outcome,
            detail=detail,
        )
