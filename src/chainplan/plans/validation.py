"""Precondition checks used by parameter builders before anything is submitted."""

from __future__ import annotations

from typing import Optional

from eth_utils import is_address, to_checksum_address

from chainplan.config.deployment import UNIT
from chainplan.core.errors import PreconditionViolation
from chainplan.ledger.base import ZERO_ADDRESS

UINT24_MAX = 2**24 - 1


def require_address(value: Optional[str], name: str, *, allow_zero: bool = False) -> str:
    """
    Return ``value`` as a checksummed address.

    ``None`` is always rejected; the zero address only where a parameter is
    documented as optional and the caller passes it explicitly.
    """
    if value is None:
        raise PreconditionViolation(f"{name} address is not set", {"parameter": name})
    if not is_address(value):
        raise PreconditionViolation(
            f"{name} is not a valid address", {"parameter": name, "value": value}
        )
    if not allow_zero and value.lower() == ZERO_ADDRESS:
        raise PreconditionViolation(
            f"{name} must not be the zero address", {"parameter": name}
        )
    return to_checksum_address(value)


def require_ratio(value: int, name: str) -> int:
    """A ratio strictly between zero and one fixed-point unit."""
    if not 0 < value < UNIT:
        raise PreconditionViolation(
            f"{name} must be strictly between 0 and 1.0 of the fixed-point unit",
            {"parameter": name, "value": value, "unit": UNIT},
        )
    return value


def require_fraction(value: int, name: str) -> int:
    """A share between zero and one fixed-point unit, both inclusive."""
    if not 0 <= value <= UNIT:
        raise PreconditionViolation(
            f"{name} must be between 0 and 1.0 of the fixed-point unit",
            {"parameter": name, "value": value},
        )
    return value


def require_positive(value: int, name: str) -> int:
    if value <= 0:
        raise PreconditionViolation(
            f"{name} must be positive", {"parameter": name, "value": value}
        )
    return value


def require_uint24(value: int, name: str) -> int:
    if not 0 < value <= UINT24_MAX:
        raise PreconditionViolation(
            f"{name} must fit in uint24 and be positive", {"parameter": name, "value": value}
        )
    return value


def require_text(value: str, name: str) -> str:
    if not value or not value.strip():
        raise PreconditionViolation(f"{name} must not be empty", {"parameter": name})
    return value
