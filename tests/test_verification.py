"""Tests for clients/explorer.py and verification/.

Explorer requests are mocked with respx; the verifier is exercised with a
stubbed explorer so polling and outcome mapping can be checked directly.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import respx
from chainplan.clients import ExplorerClient, ExplorerError
from chainplan.clients.base import RetryableHTTPError
from chainplan.ledger import ArtifactStore
from chainplan.verification import (
    DeployedContract,
    ManifestVerifier,
    VerificationOutcome,
    deployed_contracts,
)
from httpx import Response

API_URL = "https://api-sepolia.scrollscan.com/api"
TREASURY = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
MARKET = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"


@pytest.fixture
def artifacts(tmp_path):
    root = tmp_path / "artifacts"
    for name in ("Treasury", "Market"):
        folder = root / "contracts" / f"{name}.sol"
        folder.mkdir(parents=True)
        (folder / f"{name}.json").write_text(
            json.dumps(
                {
                    "contractName": name,
                    "sourceName": f"contracts/{name}.sol",
                    "abi": [],
                    "bytecode": "0x6080",
                }
            )
        )
    # only Treasury has build info
    (root / "contracts" / "Treasury.sol" / "Treasury.dbg.json").write_text(
        json.dumps({"buildInfo": "../../build-info/abc123.json"})
    )
    (root / "build-info").mkdir()
    (root / "build-info" / "abc123.json").write_text(
        json.dumps(
            {
                "solcLongVersion": "0.8.20+commit.a1b79de6",
                "input": {"language": "Solidity", "sources": {}},
            }
        )
    )
    return ArtifactStore(root)


def manifest():
    return {
        "plan": "stable-jack-scroll",
        "network": "scrollSepolia",
        "identifiers": {"treasury": TREASURY, "market": MARKET},
        "steps": [
            {
                "step": "DeployTreasury",
                "resource": "treasury",
                "kind": "deploy",
                "status": "success",
                "output": {"address": TREASURY, "initial_mint_ratio": 5},
                "contract": "Treasury",
                "arguments": [{"type": "uint256", "value": 5}],
            },
            {
                "step": "InitializeTreasury",
                "resource": "treasury",
                "kind": "initialize",
                "status": "success",
                "output": {"target": TREASURY, "transaction": "0xtx"},
                "contract": "Treasury",
                "arguments": [],
            },
            {
                "step": "DeployMarket",
                "resource": "market",
                "kind": "deploy",
                "status": "success",
                "output": MARKET,
                "contract": "Market",
                "arguments": [],
            },
        ],
    }


def stub_explorer(verify_source=None, statuses=()):
    explorer = MagicMock(spec=ExplorerClient)
    explorer.verify_source = AsyncMock(return_value="guid-1", side_effect=verify_source)
    explorer.check_status = AsyncMock(side_effect=list(statuses))
    return explorer


class TestDeployedContracts:
    def test_only_deploy_steps(self):
        contracts = deployed_contracts(manifest())

        assert [c.resource for c in contracts] == ["treasury", "market"]
        assert contracts[0].address == TREASURY
        assert contracts[0].arguments == (("uint256", 5),)

    def test_failed_steps_are_ignored(self):
        step = dict(manifest()["steps"][0], status="failed")

        assert DeployedContract.from_step(step) is None


class TestManifestVerifier:
    """Tests for ManifestVerifier outcome mapping."""

    @pytest.mark.asyncio
    async def test_verified_after_pending(self, artifacts):
        explorer = stub_explorer(statuses=["Pending in queue", "Pass - Verified"])
        verifier = ManifestVerifier(explorer, artifacts, API_URL, poll_interval=0)

        report = await verifier.verify_manifest(manifest())

        treasury, market = report.results
        assert treasury.outcome is VerificationOutcome.VERIFIED
        assert market.outcome is VerificationOutcome.SKIPPED
        assert explorer.check_status.await_count == 2

        kwargs = explorer.verify_source.await_args.kwargs
        assert kwargs["contract_name"] == "contracts/Treasury.sol:Treasury"
        assert kwargs["compiler_version"] == "v0.8.20+commit.a1b79de6"
        assert kwargs["constructor_arguments"] == (5).to_bytes(32, "big").hex()

    @pytest.mark.asyncio
    async def test_already_verified(self, artifacts):
        explorer = stub_explorer(
            verify_source=ExplorerError(
                "Verification request rejected",
                {"result": "Contract source code already verified"},
            )
        )
        verifier = ManifestVerifier(explorer, artifacts, API_URL, poll_interval=0)

        report = await verifier.verify_manifest(manifest())

        assert report.results[0].outcome is VerificationOutcome.ALREADY_VERIFIED
        assert report.results[0].ok
        assert report.failed == []

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(self, artifacts):
        explorer = stub_explorer(statuses=["Fail - Unable to verify"])
        verifier = ManifestVerifier(explorer, artifacts, API_URL, poll_interval=0)

        report = await verifier.verify_manifest(manifest())

        assert report.results[0].outcome is VerificationOutcome.FAILED
        assert not report.all_verified
        assert [r.resource for r in report.failed] == ["treasury"]

    @pytest.mark.asyncio
    async def test_still_pending_after_max_polls(self, artifacts):
        explorer = stub_explorer(statuses=["Pending in queue"] * 3)
        verifier = ManifestVerifier(explorer, artifacts, API_URL, poll_interval=0, max_polls=3)

        report = await verifier.verify_manifest(manifest())

        assert report.results[0].outcome is VerificationOutcome.FAILED
        assert "pending" in report.results[0].detail

    @pytest.mark.asyncio
    async def test_report_to_dict(self, artifacts):
        explorer = stub_explorer(statuses=["Pass - Verified"])
        verifier = ManifestVerifier(explorer, artifacts, API_URL, poll_interval=0)

        data = (await verifier.verify_manifest(manifest())).to_dict()

        assert data["explorer_url"] == API_URL
        assert [r["outcome"] for r in data["results"]] == ["verified", "skipped"]


class TestExplorerClient:
    """Tests for ExplorerClient against a mocked explorer API."""

    @pytest.mark.asyncio
    async def test_verify_source_returns_guid(self):
        client = ExplorerClient(API_URL, "key")

        with respx.mock:
            route = respx.post(API_URL).mock(
                return_value=Response(200, json={"status": "1", "result": "guid-123"})
            )

            guid = await client.verify_source(
                address=TREASURY,
                contract_name="contracts/Treasury.sol:Treasury",
                compiler_version="v0.8.20+commit.a1b79de6",
                standard_json_input={"language": "Solidity"},
                constructor_arguments="",
            )

            assert guid == "guid-123"
            body = route.calls.last.request.content.decode()
            assert "action=verifysourcecode" in body
            assert "codeformat=solidity-standard-json-input" in body

    @pytest.mark.asyncio
    async def test_rejected_request(self):
        client = ExplorerClient(API_URL, "bad-key")

        with respx.mock:
            respx.post(API_URL).mock(
                return_value=Response(200, json={"status": "0", "result": "Invalid API Key"})
            )

            with pytest.raises(ExplorerError) as exc_info:
                await client.verify_source(
                    address=TREASURY,
                    contract_name="contracts/Treasury.sol:Treasury",
                    compiler_version="v0.8.20",
                    standard_json_input={},
                    constructor_arguments="",
                )

            assert exc_info.value.details["result"] == "Invalid API Key"

    @pytest.mark.asyncio
    async def test_check_status(self):
        client = ExplorerClient(API_URL, "key")

        with respx.mock:
            route = respx.get(url__startswith=API_URL).mock(
                return_value=Response(200, json={"status": "1", "result": "Pass - Verified"})
            )

            assert await client.check_status("guid-123") == "Pass - Verified"
            assert route.calls.last.request.url.params["guid"] == "guid-123"


class TestVerifierErrors:
    """Any explorer error becomes a failed result for that contract."""

    @pytest.mark.asyncio
    async def test_undecodable_explorer_response(self, artifacts):
        explorer = stub_explorer(
            verify_source=json.JSONDecodeError("Expecting value", "<html>", 0)
        )
        verifier = ManifestVerifier(explorer, artifacts, API_URL, poll_interval=0)

        report = await verifier.verify_manifest(manifest())

        treasury, market = report.results
        assert treasury.outcome is VerificationOutcome.FAILED
        assert "JSONDecodeError" in treasury.detail
        assert market.outcome is VerificationOutcome.SKIPPED

    @pytest.mark.asyncio
    async def test_error_while_polling(self, artifacts):
        explorer = stub_explorer(statuses=[KeyError("result")])
        verifier = ManifestVerifier(explorer, artifacts, API_URL, poll_interval=0)

        report = await verifier.verify_manifest(manifest())

        assert report.results[0].outcome is VerificationOutcome.FAILED
        assert [r.resource for r in report.failed] == ["treasury"]


class TestSendErrors:
    """Single-shot requests map bad bodies and broken connections to retryable errors."""

    @pytest.mark.asyncio
    async def test_html_body_is_retryable(self):
        client = ExplorerClient(API_URL, "key")

        with respx.mock:
            respx.post(API_URL).mock(return_value=Response(200, text="<html>Just a moment</html>"))

            with pytest.raises(RetryableHTTPError, match="not valid JSON"):
                await client._send("POST", data={"module": "contract"})

    @pytest.mark.asyncio
    async def test_dropped_connection_is_retryable(self):
        client = ExplorerClient(API_URL, "key")

        with respx.mock:
            respx.post(API_URL).mock(side_effect=httpx.RemoteProtocolError("peer closed connection"))

            with pytest.raises(RetryableHTTPError):
                await client._send("POST", data={"module": "contract"})
