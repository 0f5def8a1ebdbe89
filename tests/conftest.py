"""Root test configuration."""

import logging
import os

import pytest
import structlog
from chainplan.config import ExternalReferences, ProvisioningConfig, get_settings
from chainplan.ledger import SimulatedLedger
from chainplan.orchestration import RetryPolicy, StepExecutor

SENDER = "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266"
BASE_TOKEN = "0x5300000000000000000000000000000000000004"
RATE_PROVIDER = "0x1111111111111111111111111111111111111111"
PRICE_ORACLE = "0x2222222222222222222222222222222222222222"


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep CHAINPLAN_* variables from the host out of the tests."""
    for name in list(os.environ):
        if name.startswith("CHAINPLAN_"):
            monkeypatch.delenv(name)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fast_retry():
    return RetryPolicy(max_attempts=3, base_backoff=0, max_backoff=0, confirmation_timeout=5)


@pytest.fixture
def ledger():
    return SimulatedLedger()


@pytest.fixture
def executor(ledger, fast_retry):
    return StepExecutor(ledger, SENDER, fast_retry)


@pytest.fixture
def deploy_config(fast_retry):
    """Deployment config with every external reference set."""
    return ProvisioningConfig(
        submitting_identity=SENDER,
        retry=fast_retry,
        references=ExternalReferences(
            base_token=BASE_TOKEN,
            rate_provider=RATE_PROVIDER,
            price_oracle=PRICE_ORACLE,
        ),
    )
