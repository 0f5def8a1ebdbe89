"""End-to-end tests for the Stable Jack plans on the simulated ledger."""

import dataclasses

import pytest
from chainplan.config import UNIT, ExternalReferences, InitialParameters
from chainplan.core.errors import PlanError, PreconditionViolation, TransientSubmissionError
from chainplan.ledger import ZERO_ADDRESS
from chainplan.orchestration import Orchestrator, RunStatus, StepExecutor, plan
from chainplan.plans import default_registry, stable_jack_plan, stable_jack_scroll_plan
from conftest import BASE_TOKEN, PRICE_ORACLE, SENDER

STABLE_JACK_ORDER = [
    "DeployTreasury",
    "DeploySynthetic",
    "DeployLeveraged",
    "DeployMarket",
    "InitializeTreasury",
    "InitializeMarket",
    "DeployRebalancePool",
    "InitializeRebalancePool",
]


@pytest.fixture
def orchestrator(executor):
    return Orchestrator(executor, network="hardhat")


def with_mint_ratio(config, ratio):
    params = dataclasses.replace(config.initial_parameters, mint_ratio=ratio)
    return dataclasses.replace(config, initial_parameters=params)


class TestStableJackPlan:
    """Tests for the eight-step stable-jack plan."""

    def test_order_follows_declaration(self, deploy_config):
        assert [s.name for s in plan(stable_jack_plan(deploy_config))] == STABLE_JACK_ORDER

    @pytest.mark.asyncio
    async def test_successful_run(self, orchestrator, ledger, deploy_config):
        run = await orchestrator.run("stable-jack", stable_jack_plan(deploy_config))

        assert run.status is RunStatus.COMPLETED
        assert [r.step for r in run.results] == STABLE_JACK_ORDER
        identifiers = run.manifest.identifiers
        assert set(identifiers) == {"treasury", "fToken", "xToken", "market", "rebalancePool"}
        assert len(set(identifiers.values())) == 5
        assert len(ledger.submissions) == 8

    @pytest.mark.asyncio
    async def test_parameters_reference_earlier_outputs(self, orchestrator, ledger, deploy_config):
        run = await orchestrator.run("stable-jack", stable_jack_plan(deploy_config))
        state = run.state

        synthetic = ledger.submissions_for("DeploySynthetic")[0]
        assert synthetic.args == (state.address("DeployTreasury"), "Jack USD", "jUSD")

        init = ledger.submissions_for("InitializeTreasury")[0]
        assert init.target == state.address("DeployTreasury")
        assert init.args[0] == state.address("DeployMarket")
        assert init.args[2] == state.address("DeploySynthetic")
        assert init.args[3] == state.address("DeployLeveraged")
        assert init.args[4].lower() == PRICE_ORACLE

        market = ledger.submissions_for("InitializeMarket")[0]
        assert market.args[1].lower() == SENDER  # platform defaults to the submitter
        assert market.args[2] == ZERO_ADDRESS

    @pytest.mark.asyncio
    async def test_recorded_values_in_state(self, orchestrator, deploy_config):
        run = await orchestrator.run("stable-jack", stable_jack_plan(deploy_config))

        assert run.state["DeployTreasury"]["initial_mint_ratio"] == UNIT // 2
        assert run.state["InitializeTreasury"]["base_token"].lower() == BASE_TOKEN

    @pytest.mark.asyncio
    async def test_unreachable_oracle(self, orchestrator, ledger, deploy_config):
        ledger.fail("InitializeTreasury", TransientSubmissionError("oracle unreachable"))

        run = await orchestrator.run("stable-jack", stable_jack_plan(deploy_config))

        assert run.status is RunStatus.FAILED
        assert run.failure.step == "InitializeTreasury"
        assert isinstance(run.failure.cause, TransientSubmissionError)
        assert len(ledger.submissions_for("InitializeTreasury")) == 3
        assert run.failure.completed == [
            "DeployTreasury",
            "DeploySynthetic",
            "DeployLeveraged",
            "DeployMarket",
        ]
        assert ledger.submissions_for("InitializeMarket") == []

    @pytest.mark.asyncio
    async def test_mint_ratio_of_one_is_rejected(self, orchestrator, ledger, deploy_config):
        config = with_mint_ratio(deploy_config, UNIT)

        run = await orchestrator.run("stable-jack", stable_jack_plan(config))

        assert run.failure.step == "DeployTreasury"
        assert isinstance(run.failure.cause, PreconditionViolation)
        assert ledger.submissions == []

    @pytest.mark.asyncio
    async def test_mint_ratio_just_below_one_is_accepted(self, orchestrator, deploy_config):
        config = with_mint_ratio(deploy_config, UNIT - 1)

        run = await orchestrator.run("stable-jack", stable_jack_plan(config))

        assert run.completed
        assert run.state["DeployTreasury"]["initial_mint_ratio"] == UNIT - 1

    @pytest.mark.asyncio
    async def test_missing_reference_fails_before_submission(self, orchestrator, ledger, deploy_config):
        config = dataclasses.replace(
            deploy_config, references=ExternalReferences(base_token=BASE_TOKEN)
        )

        run = await orchestrator.run("stable-jack", stable_jack_plan(config))

        assert run.failure.step == "InitializeTreasury"
        assert isinstance(run.failure.cause, PreconditionViolation)
        assert ledger.submissions_for("InitializeTreasury") == []

    @pytest.mark.asyncio
    async def test_ema_interval_must_fit_uint24(self, orchestrator, ledger, deploy_config):
        config = dataclasses.replace(
            deploy_config, initial_parameters=InitialParameters(ema_sample_interval=2**24)
        )

        run = await orchestrator.run("stable-jack", stable_jack_plan(config))

        assert run.failure.step == "InitializeTreasury"
        assert ledger.submissions_for("InitializeTreasury") == []


class TestStableJackScrollPlan:
    @pytest.mark.asyncio
    async def test_successful_run(self, ledger, deploy_config, fast_retry):
        orchestrator = Orchestrator(StepExecutor(ledger, SENDER, fast_retry))

        run = await orchestrator.run("stable-jack-scroll", stable_jack_scroll_plan(deploy_config))

        assert run.completed
        assert [r.step for r in run.results][-1] == "LinkTreasuryMarket"
        assert set(run.manifest.identifiers) == {"treasury", "market", "rebalancePool"}
        link = ledger.submissions_for("LinkTreasuryMarket")[0]
        assert link.args == (run.state.address("DeployMarket"),)


class TestRegistry:
    def test_default_plans(self):
        assert default_registry().list() == ["stable-jack", "stable-jack-scroll"]

    def test_unknown_plan(self):
        with pytest.raises(PlanError):
            default_registry().get("missing")
