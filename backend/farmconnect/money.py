# Overview: Conversions between GHS amounts in JSON and integer pesewas in storage.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from .errors import ErrorKind, ServiceError

# GHS 9,999,999.99
MAX_AMOUNT_CENTS = 999_999_999


def _invalid(field: str, message: str) -> ServiceError:
    return ServiceError(ErrorKind.VALIDATION, "INVALID_AMOUNT", message, {"field": field})


def to_cents(value: Any, *, field: str = "amount") -> int:
    """Parse a client amount in GHS (8.5 or "8.50") into integer pesewas."""
    if value is None or isinstance(value, bool):
        raise _invalid(field, f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise _invalid(field, f"{field} must be a number")
    if not amount.is_finite():
        raise _invalid(field, f"{field} must be a number")
    if amount < 0:
        raise _invalid(field, f"{field} cannot be negative")

    cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents > MAX_AMOUNT_CENTS:
        raise _invalid(field, f"{field} is too large")
    return cents


def from_cents(cents: Optional[int]) -> Optional[float]:
    """Render integer pesewas as a 2-decimal GHS amount for JSON."""
    if cents is None:
        return None
    return float((Decimal(cents) / 100).quantize(Decimal("0.01")))
