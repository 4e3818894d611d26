# Overview: Decimal helpers for amounts, rates and commission arithmetic.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

# Largest value a NUMERIC(10, 2) column holds
MAX_AMOUNT = Decimal("99999999.99")

# Integer digits accepted before range checks; anything longer is rejected outright
MAX_DIGITS = 20


def to_decimal(value, field: str = "amount") -> Decimal:
    """
    Coerce JSON/form input to a 2-place Decimal.

    Accepts int, str and Decimal. Floats go through str() so 0.1 stays 0.10.
    Raises ValueError with a field-specific message on bad input.
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"{field} must be a number")
    if isinstance(value, float):
        value = str(value)
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"{field} must be a number")
    if not number.is_finite():
        raise ValueError(f"{field} must be a number")
    # quantize traps once the result needs more digits than the context allows
    if number.adjusted() > MAX_DIGITS:
        raise ValueError(f"{field} is too large")
    try:
        return number.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"{field} is too large")


def quantize(value) -> Decimal:
    """Normalize whatever the driver returned (float on SQLite, Decimal on PostgreSQL)."""
    if value is None:
        return Decimal("0.00")
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_commission(amount: Decimal, rate: Decimal) -> Decimal:
    """commission = amount * rate / 100, rounded half-up to cents."""
    return (Decimal(amount) * Decimal(rate) / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


def fmt(value) -> str | None:
    """Serialize money for JSON as a fixed 2-place string."""
    if value is None:
        return None
    return str(quantize(value))
