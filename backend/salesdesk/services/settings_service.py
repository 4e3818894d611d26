from __future__ import annotations

import logging
import re
from decimal import Decimal

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Setting
from ..money import to_decimal
from ..roles import Actor, ensure_admin

logger = logging.getLogger(__name__)


DEFAULT_SETTINGS = {
    "company_name": "AfroGazette Media & Advertising",
    "company_address": "Office 4, Second Floor, Karimapondo Building, 78 Leopold Takawira, Harare, Zimbabwe",
    "default_commission_rate": "10.00",
    "invoice_prefix": "INV",
}

# Invoice numbering and commission defaults must always resolve
PROTECTED_KEYS = {"company_name", "default_commission_rate", "invoice_prefix"}

KEY_RE = re.compile(r"^[A-Za-z0-9_.\-]{1,100}$")
PREFIX_RE = re.compile(r"^[A-Za-z0-9_]{1,10}$")

FALLBACK_COMMISSION_RATE = Decimal("10.00")


def _validate_key(key) -> str:
    if not isinstance(key, str) or not KEY_RE.match(key.strip()):
        raise ValidationError("Invalid setting key")
    return key.strip()


def _normalize_value(key: str, value) -> str:
    """Per-key validation; returns the string form that is stored."""
    if value is None:
        raise ValidationError("Setting value is required")
    if isinstance(value, bool) or isinstance(value, (dict, list)):
        raise ValidationError(f"{key} must be a string or number")
    text = str(value).strip()

    if key == "default_commission_rate":
        try:
            rate = to_decimal(text, key)
        except ValueError as exc:
            raise ValidationError(str(exc))
        if rate < 0 or rate > 100:
            raise ValidationError("default_commission_rate must be between 0 and 100")
        return str(rate)

    if key == "invoice_prefix":
        if not PREFIX_RE.match(text):
            raise ValidationError("invoice_prefix must be 1-10 letters, digits or underscores")
        return text

    if key in PROTECTED_KEYS and not text:
        raise ValidationError(f"{key} cannot be blank")
    return text


def _row(key: str) -> Setting | None:
    return db.session.query(Setting).filter_by(setting_key=key).first()


def get_all() -> dict[str, str | None]:
    """Flat key-value map: stored rows layered over the defaults."""
    values: dict[str, str | None] = dict(DEFAULT_SETTINGS)
    for row in db.session.query(Setting).order_by(Setting.setting_key.asc()).all():
        values[row.setting_key] = row.setting_value
    return values


def get_value(key: str, default: str | None = None) -> str | None:
    """Read-through lookup that falls back to the built-in default."""
    row = _row(key)
    if row is not None and row.setting_value not in (None, ""):
        return row.setting_value
    if default is not None:
        return default
    return DEFAULT_SETTINGS.get(key)


def get_setting(key: str) -> dict:
    key = _validate_key(key)
    row = _row(key)
    if row is not None:
        return row.to_dict()
    if key in DEFAULT_SETTINGS:
        return {"setting_key": key, "setting_value": DEFAULT_SETTINGS[key], "is_default": True}
    raise NotFoundError("Setting not found")


def default_commission_rate() -> Decimal:
    raw = get_value("default_commission_rate")
    try:
        return to_decimal(raw, "default_commission_rate")
    except ValueError:
        logger.warning("Stored default_commission_rate %r is invalid; using %s", raw, FALLBACK_COMMISSION_RATE)
        return FALLBACK_COMMISSION_RATE


def invoice_prefix() -> str:
    raw = get_value("invoice_prefix")
    if raw and PREFIX_RE.match(raw):
        return raw
    return DEFAULT_SETTINGS["invoice_prefix"]


def _upsert(key: str, value, user_id: int | None) -> Setting:
    key = _validate_key(key)
    stored = _normalize_value(key, value)
    row = _row(key)
    if row is None:
        row = Setting(setting_key=key)
        db.session.add(row)
    row.setting_value = stored
    row.updated_by_user_id = user_id
    return row


def upsert_setting(actor: Actor, key: str, value) -> Setting:
    ensure_admin(actor, "change settings")
    row = _upsert(key, value, actor.user_id)
    db.session.commit()
    logger.info("Setting %s changed by %s", row.setting_key, actor.user_id)
    return row


def bulk_update(actor: Actor, values) -> dict[str, str | None]:
    """All-or-nothing: one invalid entry rejects the whole batch."""
    ensure_admin(actor, "change settings")
    if not isinstance(values, dict) or not values:
        raise ValidationError("settings must be a non-empty object")

    try:
        for key, value in values.items():
            _upsert(key, value, actor.user_id)
        db.session.commit()
    except ValidationError:
        db.session.rollback()
        raise

    logger.info("Settings %s changed by %s", ", ".join(sorted(values)), actor.user_id)
    return get_all()


def delete_setting(actor: Actor, key: str) -> None:
    ensure_admin(actor, "delete settings")
    key = _validate_key(key)
    if key in PROTECTED_KEYS:
        raise ValidationError(f"Setting {key} is protected and cannot be deleted")
    row = _row(key)
    if row is None:
        raise NotFoundError("Setting not found")
    db.session.delete(row)
    db.session.commit()
    logger.info("Setting %s deleted by %s", key, actor.user_id)


def seed_defaults(*, overwrite: bool = False, user_id: int | None = None) -> int:
    """Insert missing defaults (or restore all of them). Caller commits."""
    changed = 0
    for key, value in DEFAULT_SETTINGS.items():
        row = _row(key)
        if row is None:
            db.session.add(Setting(setting_key=key, setting_value=value, updated_by_user_id=user_id))
            changed += 1
        elif overwrite and row.setting_value != value:
            row.setting_value = value
            row.updated_by_user_id = user_id
            changed += 1
    db.session.flush()
    return changed


def reset_defaults(actor: Actor) -> dict[str, str | None]:
    ensure_admin(actor, "reset settings")
    changed = seed_defaults(overwrite=True, user_id=actor.user_id)
    db.session.commit()
    logger.info("Settings reset to defaults by %s (%d changed)", actor.user_id, changed)
    return get_all()
