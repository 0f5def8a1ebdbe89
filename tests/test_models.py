"""Tests for orchestration/models.py."""

import pytest
from chainplan.core.errors import DuplicateStep, PreconditionViolation
from chainplan.orchestration import CallParameters, StepKind, StepResult, StepStatus, WorkingState


class TestWorkingState:
    """Tests for the append-only working state."""

    def test_record_and_read(self):
        state = WorkingState()
        state.record("DeployTreasury", "0xabc")

        assert state["DeployTreasury"] == "0xabc"
        assert "DeployTreasury" in state
        assert len(state) == 1

    def test_entries_cannot_be_overwritten(self):
        state = WorkingState()
        state.record("DeployTreasury", "0xabc")

        with pytest.raises(DuplicateStep):
            state.record("DeployTreasury", "0xdef")

        assert state["DeployTreasury"] == "0xabc"

    def test_record_outputs_are_read_only(self):
        state = WorkingState()
        state.record("InitializeMarket", {"target": "0xabc", "platform": "0x1"})

        with pytest.raises(TypeError):
            state["InitializeMarket"]["platform"] = "0x2"

    def test_preserves_insertion_order(self):
        state = WorkingState()
        for name in ("C", "A", "B"):
            state.record(name, f"0x{name}")

        assert list(state) == ["C", "A", "B"]

    def test_address_from_plain_output(self):
        state = WorkingState({"DeployMarket": "0xmarket"})

        assert state.address("DeployMarket") == "0xmarket"

    def test_address_from_record_output(self):
        state = WorkingState(
            {"DeployTreasury": {"address": "0xtreasury", "initial_mint_ratio": 5}}
        )

        assert state.address("DeployTreasury") == "0xtreasury"

    def test_address_of_missing_step_is_a_precondition_violation(self):
        with pytest.raises(PreconditionViolation):
            WorkingState().address("DeployTreasury")

    def test_snapshot_is_independent(self):
        state = WorkingState({"A": "0x1"})
        snapshot = state.snapshot()
        state.record("B", "0x2")

        assert list(snapshot) == ["A"]

    def test_dict_round_trip(self):
        state = WorkingState({"A": "0x1", "B": {"target": "0x1", "transaction": "0xt"}})

        restored = WorkingState.from_dict(state.to_dict())

        assert restored.to_dict() == state.to_dict()


class TestCallParameters:
    def test_argument_types_must_match(self):
        with pytest.raises(PreconditionViolation):
            CallParameters(args=(1, 2), arg_types=("uint256",))


class TestStepResult:
    def test_to_dict(self):
        result = StepResult(
            step="DeployTreasury",
            resource="treasury",
            kind=StepKind.DEPLOY,
            status=StepStatus.SUCCESS,
            output="0xabc",
            attempts=1,
            contract="Treasury",
            arguments=(("uint256", 5),),
        )

        data = result.to_dict()

        assert result.success
        assert data["kind"] == "deploy"
        assert data["status"] == "success"
        assert data["arguments"] == [{"type": "uint256", "value": 5}]
        assert data["error"] is None
