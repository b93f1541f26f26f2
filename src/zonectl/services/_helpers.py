"""Shared service-layer helper functions."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pydantic

from zonectl.domain.errors import ValidationError, ZoneError
from zonectl.services.result import ServiceError, ServiceResult


def iso_from_epoch(seconds: float) -> str:
    """Epoch seconds as ISO 8601 UTC (pending-deletion expiry display)."""
    return datetime.fromtimestamp(seconds, UTC).isoformat()


def parse_price(value: object) -> int:
    """Parse a price setting as a non-negative integer.

    Accepts ints and digit strings (``"50"``, ``" 7 "``). Booleans, floats
    with a fractional part, and negatives are rejected.

    Raises:
        ValueError: If *value* is not a non-negative integer.
    """
    if isinstance(value, bool):
        msg = "price must be a whole number"
        raise ValueError(msg)
    if isinstance(value, int):
        price = value
    elif isinstance(value, float) and value.is_integer():
        price = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        price = int(value.strip())
    else:
        msg = f"price must be a whole number, got {value!r}"
        raise ValueError(msg)
    if price < 0:
        msg = "price cannot be negative"
        raise ValueError(msg)
    return price


def error_result(
    op: str,
    exc: ZoneError | pydantic.ValidationError,
    *,
    data: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> ServiceResult:
    """Failed ServiceResult for a zone error or a rejected model input."""
    if isinstance(exc, pydantic.ValidationError):
        errors = exc.errors()
        message = str(errors[0]["msg"]) if errors else str(exc)
        error = ServiceError(code=ValidationError.code, message=message)
    else:
        error = ServiceError.from_exception(exc)
    return ServiceResult(
        ok=False,
        op=op,
        data=data or {},
        warnings=warnings or [],
        error=error,
    )
