"""Tests for logging.py."""

import structlog
from chainplan.logging import REDACTED, redact_secrets, run_context


class TestRedactSecrets:
    def test_credentials_are_masked(self):
        event = {"event": "explorer_request", "api_key": "abc123", "url": "https://example.org"}

        result = redact_secrets(None, "info", event)

        assert result["api_key"] == REDACTED
        assert result["url"] == "https://example.org"

    def test_events_without_credentials_are_untouched(self):
        event = {"event": "step_confirmed", "block": 12}

        assert redact_secrets(None, "info", dict(event)) == event


class TestRunContext:
    def test_binds_run_fields(self):
        with run_context("stable-jack", "hardhat") as run_id:
            bound = structlog.contextvars.get_contextvars()

        assert bound["run_id"] == run_id
        assert bound["plan"] == "stable-jack"
        assert bound["network"] == "hardhat"
        assert "run_id" not in structlog.contextvars.get_contextvars()

    def test_each_run_gets_its_own_id(self):
        with run_context("stable-jack") as first:
            pass
        with run_context("stable-jack") as second:
            pass

        assert first != second
        assert len(first) == 12
