"""
Structured logging for chainplan.

Events are rendered as JSON lines on stderr, so stdout stays free for
command output (``--format json``). Events emitted while a run is active
carry the run's ``run_id``, ``plan`` and ``network``.
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, MutableMapping, Optional

import structlog

REDACTED = "***"
SECRET_KEYS = frozenset({"api_key", "apikey", "private_key"})


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask credential fields before rendering."""
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure structlog/standard logging bridge."""

    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            timestamper,
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)


@contextmanager
def run_context(plan: str, network: Optional[str] = None) -> Iterator[str]:
    """Bind a fresh run id, the plan and the network to every event in the block."""
    run_id = uuid.uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(run_id=run_id, plan=plan, network=network):
        yield run_id
