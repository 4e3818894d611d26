from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal
from salesdesk.time_utils import parse_iso_date

from dataclasses import dataclass
from typing import Any

import re

from flask import request
from sqlalchemy import Boolean, Date, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .money import MAX_AMOUNT, to_decimal


PHONE_RE = re.compile(r"^\+?[\d\s\-()]+$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or not re.fullmatch(r"-?\d+", stripped):
                raise ValidationError(f"{col.key} must be an integer")
            return int(stripped)
        raise ValidationError(f"{col.key} must be an integer")

    # Booleans (form posts send "true"/"false")
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("true", "1", "yes"):
                return True
            if lowered in ("false", "0", "no"):
                return False
            raise ValidationError(f"{col.key} must be a boolean")
        return bool(value)

    # Money and rates
    if isinstance(coltype, Numeric):
        if isinstance(value, Decimal):
            return value
        try:
            return to_decimal(value, col.key)
        except ValueError as exc:
            raise ValidationError(str(exc))

    # Calendar dates
    if isinstance(coltype, Date):
        if isinstance(value, date) and not isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be a date (YYYY-MM-DD)")
            if d is None:
                raise ValidationError(f"{col.key} must be a date (YYYY-MM-DD)")
            return d
        raise ValidationError(f"{col.key} must be a date (YYYY-MM-DD)")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    patch: dict = {}

    for k, raw in payload.items():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

        col = cols[k]

        # Form posts send "" for untouched optional inputs
        if isinstance(raw, str) and raw.strip() == "" and col.nullable:
            raw = None

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_positive_amount(patch: dict, field: str = "amount") -> None:
    """Amounts must be > 0 and fit NUMERIC(10, 2)."""
    if field not in patch:
        return
    amount = patch[field]
    if amount is None or amount <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")


def enforce_commission_rate(rate: Decimal, field: str = "commission_rate") -> None:
    if rate < 0 or rate > 100:
        raise ValidationError(f"{field} must be between 0 and 100")


def enforce_choice(patch: dict, field: str, choices) -> None:
    if field in patch and patch[field] not in choices:
        raise ValidationError(
            f"Invalid {field}",
            {"allowed": list(choices)},
        )


def enforce_phone(patch: dict, field: str = "phone_number") -> None:
    value = patch.get(field)
    if value and not PHONE_RE.match(value):
        raise ValidationError(f"Invalid {field} format")


def enforce_email(patch: dict, field: str = "email") -> None:
    value = patch.get(field)
    if value and not EMAIL_RE.match(value):
        raise ValidationError(f"Invalid {field} format")


def json_body() -> dict:
    """Request JSON as a dict; an absent body is an empty payload."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data
