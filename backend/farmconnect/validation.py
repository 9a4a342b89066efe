from __future__ import annotations

import re
import secrets
import unicodedata
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import Boolean, Integer, String, Text, DateTime, Date, Float, Numeric

from .errors import ErrorKind, ServiceError
from .time_utils import parse_iso_datetime


class ValidationError(ServiceError):
    """400-level input problem."""

    def __init__(self, message: str, field: str | None = None, code: str = "VALIDATION_ERROR"):
        details = {"field": field} if field else None
        super().__init__(ErrorKind.VALIDATION, code, message, details)


# ---------------------------------------------------------------------------
# Format validators
# ---------------------------------------------------------------------------

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)[A-Za-z\d@$!%*?&]{8,}$")
GHANA_PHONE_RE = re.compile(r"^0\d{9}$")
GHANA_CARD_RE = re.compile(r"^GHA-\d{7}-\d$")


def validate_email(email: Any) -> bool:
    return isinstance(email, str) and bool(EMAIL_RE.match(email))


def validate_password(password: Any) -> bool:
    """
    Minimum 8 characters with at least one lowercase letter, one uppercase
    letter and one digit. Allowed symbols: @$!%*?&
    """
    return isinstance(password, str) and bool(PASSWORD_RE.match(password))


def password_strength(password: Any) -> int:
    """Score 0-6 used by clients to render a strength meter."""
    if not isinstance(password, str) or not password:
        return 0
    score = 0
    if len(password) >= 8:
        score += 1
    if len(password) >= 12:
        score += 1
    if re.search(r"[a-z]", password):
        score += 1
    if re.search(r"[A-Z]", password):
        score += 1
    if re.search(r"\d", password):
        score += 1
    if re.search(r"[@$!%*?&]", password):
        score += 1
    return score


def validate_phone_number(phone: Any) -> bool:
    """Ghana mobile numbers: 0XXXXXXXXX."""
    return isinstance(phone, str) and bool(GHANA_PHONE_RE.match(phone.strip()))


def validate_id_format(id_number: Any, id_type: str = "ghana_card") -> bool:
    if not isinstance(id_number, str):
        return False
    if id_type == "ghana_card":
        return bool(GHANA_CARD_RE.match(id_number.strip()))
    return len(id_number.strip()) >= 10


def validate_mobile_money_name(momo_name: Any, full_name: Any) -> bool:
    """True when any part (longer than 2 chars) of full_name appears in momo_name."""
    if not momo_name or not full_name:
        return False
    momo = str(momo_name).lower()
    parts = [p for p in str(full_name).lower().split() if len(p) > 2]
    return any(p in momo for p in parts)


def generate_otp(length: int = 6) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(length))


def generate_slug(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug


def mask_phone_number(phone: str | None) -> str | None:
    if not phone or len(phone) < 4:
        return phone
    return "*" * (len(phone) - 4) + phone[-4:]


def mask_id_number(id_number: str | None) -> str | None:
    if not id_number or len(id_number) < 4:
        return id_number
    return id_number[:4] + "*" * (len(id_number) - 4)


def require_fields(payload: dict, fields: Iterable[str], *, code: str = "MISSING_FIELDS") -> None:
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ServiceError(
            ErrorKind.VALIDATION,
            code,
            f"Missing required fields: {', '.join(missing)}",
            {"fields": missing},
        )


def positive_int(value: Any, *, field: str = "quantity", code: str = "INVALID_QUANTITY") -> int:
    """Strict positive integer: rejects bools, floats and numeric strings with decimals."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive integer", field, code)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer", field, code)
    return value


# ---------------------------------------------------------------------------
# Column-metadata driven payload validation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()


def _columns_by_key(model) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or "e" in stripped.lower() or "." in stripped:
                raise ValidationError(f"{col.key} must be an integer", col.key)
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer", col.key)
        raise ValidationError(f"{col.key} must be an integer", col.key)

    if isinstance(coltype, (Float, Numeric)):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number", col.key)
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{col.key} must be a number", col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime", col.key)
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime", col.key)
            return dt
        raise ValidationError(f"{col.key} must be a datetime", col.key)

    if isinstance(coltype, Date):
        if isinstance(value, str):
            try:
                return datetime.strptime(value.strip()[:10], "%Y-%m-%d").date()
            except ValueError:
                raise ValidationError(f"{col.key} must be a YYYY-MM-DD date", col.key)
        raise ValidationError(f"{col.key} must be a date", col.key)

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string", col.key)
        return str(value).strip()

    return value


def validate_payload(
    *,
    model,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - the policy's writable_fields; other keys are ignored
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ServiceError(
                ErrorKind.VALIDATION,
                "MISSING_FIELDS",
                f"Missing required fields: {', '.join(missing)}",
                {"fields": missing},
            )

    cols = _columns_by_key(model)
    patch: dict = {}

    for k, raw in payload.items():
        if k not in policy.writable_fields or k not in cols:
            continue
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null", k)
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank", k)

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}", k)

        patch[k] = val

    return patch
