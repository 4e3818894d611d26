# Overview: Service-layer operations for auth and user accounts; encapsulates business logic and database work.

"""
Authentication and user administration.

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing; tokens are issued by token_service.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Email is the login name, stored lowercased
- Inactive accounts cannot log in and their tokens stop resolving
"""

from __future__ import annotations

import logging

import bcrypt
from sqlalchemy import func

from ..errors import ConflictError, ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from ..extensions import db
from ..models import Client, CommissionPayment, Invoice, Sale, Setting, User
from ..roles import Actor, Role, ensure_admin
from ..validation import ModelValidationPolicy, enforce_email, enforce_phone, validate_payload
from salesdesk.time_utils import utcnow
from . import settings_service

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

USER_POLICY = ModelValidationPolicy(
    writable_fields={"first_name", "last_name", "email", "phone_number", "is_active"},
    required_on_create={"first_name", "last_name", "email"},
)


def validate_password_strength(password) -> None:
    """Raises ValidationError if the password is missing or shorter than 8 characters."""
    if not isinstance(password, str) or not password:
        raise ValidationError("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    WHY: Cost factor 12 provides good security/performance balance.
    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    A malformed stored hash counts as a mismatch.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email) -> str:
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("Email is required")
    return email.strip().lower()


def _parse_role(value) -> Role:
    try:
        return Role.parse(value)
    except ValueError:
        raise ValidationError("Invalid role", {"allowed": Role.values()})


def _find_by_email(email: str) -> User | None:
    return db.session.query(User).filter(func.lower(User.email) == email).first()


def authenticate(email: str, password: str) -> User:
    """
    Verify credentials and stamp last_login_at.

    Raises UnauthorizedError for unknown email or wrong password (same message
    for both) and ForbiddenError for a deactivated account.
    """
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = _find_by_email(normalize_email(email))
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt for %s", email)
        raise UnauthorizedError("Invalid credentials")

    if not user.is_active:
        logger.warning("Login attempt on inactive account %s", user.id)
        raise ForbiddenError("Account is inactive")

    user.last_login_at = utcnow()
    db.session.commit()
    logger.info("User %s logged in", user.id)
    return user


def change_password(actor: Actor, current_password: str, new_password: str) -> None:
    user = get_user(actor.user_id)
    if not verify_password(current_password, user.password_hash):
        raise UnauthorizedError("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    db.session.commit()
    logger.info("User %s changed their password", user.id)


def register_user(data: dict, role: Role) -> User:
    """Validate and insert an account with the given role. Caller commits."""
    payload = dict(data or {})
    password = payload.pop("password", None)
    payload.pop("role", None)
    if "email" in payload:
        payload["email"] = normalize_email(payload["email"])

    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=False)
    enforce_email(patch)
    enforce_phone(patch)

    if _find_by_email(patch["email"]):
        raise ConflictError("A user with this email already exists")

    user = User(
        first_name=patch["first_name"],
        last_name=patch["last_name"],
        email=patch["email"],
        phone_number=patch.get("phone_number"),
        role=role,
        is_active=patch.get("is_active", True),
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.flush()
    return user


def create_user(actor: Actor, data: dict) -> User:
    """Admin creates a staff account. Email must be unique (case-insensitive)."""
    ensure_admin(actor, "create users")
    if not (data or {}).get("role"):
        raise ValidationError("Missing required fields: role")
    role = _parse_role(data["role"])

    user = register_user(data, role)
    db.session.commit()
    logger.info("User %s (%s) created by %s", user.id, role.value, actor.user_id)
    return user


def bootstrap_admin(data: dict) -> User:
    """
    One-time path that creates the first admin on an empty install.

    Fails with ForbiddenError as soon as any user row exists.
    """
    if db.session.query(User.id).first() is not None:
        raise ForbiddenError("Bootstrap is only available before any user exists")

    user = register_user(data, Role.ADMIN)
    settings_service.seed_defaults()
    db.session.commit()
    logger.info("Bootstrap admin %s created", user.id)
    return user


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def list_users(*, role: str | None = None, is_active: bool | None = None) -> list[User]:
    query = db.session.query(User)
    if role:
        query = query.filter(User.role == _parse_role(role))
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    return query.order_by(User.created_at.desc(), User.id.desc()).all()


def _commission_history(user_id: int) -> dict:
    sales_count = db.session.query(func.count(Sale.id)).filter(Sale.journalist_id == user_id).scalar() or 0
    payments_count = (
        db.session.query(func.count(CommissionPayment.id))
        .filter(CommissionPayment.journalist_id == user_id)
        .scalar()
        or 0
    )
    return {"sales": int(sales_count), "commission_payments": int(payments_count)}


def update_user(actor: Actor, user_id: int, data: dict) -> User:
    """
    Admin edit of profile, role, active flag or password.

    A journalist who owns sales or commission payments keeps the journalist
    role (commission stats and the leaderboard count journalists only).
    """
    ensure_admin(actor, "update users")
    user = get_user(user_id)

    payload = dict(data or {})
    role_value = payload.pop("role", None)
    password = payload.pop("password", None)
    if "email" in payload and payload["email"] is not None:
        payload["email"] = normalize_email(payload["email"])

    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=True)
    enforce_email(patch)
    enforce_phone(patch)

    if "email" in patch and patch["email"] != user.email:
        existing = _find_by_email(patch["email"])
        if existing is not None and existing.id != user.id:
            raise ConflictError("A user with this email already exists")

    if role_value is not None:
        patch["role"] = _parse_role(role_value)

    if actor.owns(user.id):
        if patch.get("is_active") is False:
            raise ValidationError("You cannot deactivate your own account")
        if patch.get("role") not in (None, Role.ADMIN):
            raise ValidationError("You cannot change your own role")

    if patch.get("role") not in (None, user.role) and user.role is Role.JOURNALIST:
        history = _commission_history(user.id)
        if any(history.values()):
            raise ConflictError(
                "Cannot change the role of a journalist with sales or commission payments",
                history,
            )

    for key, value in patch.items():
        setattr(user, key, value)
    if password:
        user.password_hash = hash_password(password)

    db.session.commit()
    logger.info("User %s updated by %s (%s)", user.id, actor.user_id, ", ".join(sorted(patch)) or "password")
    return user


def delete_user(actor: Actor, user_id: int) -> None:
    """
    Hard delete.

    A user who still owns sales or commission payments cannot be removed:
    their financial history would be orphaned. Other references (client
    creator, approver, invoice generator, payer, settings editor) are nulled.
    """
    ensure_admin(actor, "delete users")
    if actor.owns(user_id):
        raise ValidationError("You cannot delete your own account")

    user = get_user(user_id)

    history = _commission_history(user.id)
    if any(history.values()):
        raise ConflictError(
            "Cannot delete a user with sales or commission payments; deactivate the account instead",
            history,
        )

    # SQLite does not enforce ON DELETE SET NULL unless foreign keys are on
    db.session.query(Client).filter(Client.added_by_user_id == user.id).update(
        {Client.added_by_user_id: None}, synchronize_session=False
    )
    db.session.query(Sale).filter(Sale.approved_by_user_id == user.id).update(
        {Sale.approved_by_user_id: None}, synchronize_session=False
    )
    db.session.query(Invoice).filter(Invoice.generated_by_user_id == user.id).update(
        {Invoice.generated_by_user_id: None}, synchronize_session=False
    )
    db.session.query(CommissionPayment).filter(CommissionPayment.paid_by_user_id == user.id).update(
        {CommissionPayment.paid_by_user_id: None}, synchronize_session=False
    )
    db.session.query(Setting).filter(Setting.updated_by_user_id == user.id).update(
        {Setting.updated_by_user_id: None}, synchronize_session=False
    )

    db.session.delete(user)
    db.session.commit()
    logger.info("User %s deleted by %s", user_id, actor.user_id)


def user_stats() -> dict:
    total = db.session.query(func.count(User.id)).scalar() or 0
    admins = db.session.query(func.count(User.id)).filter(User.role == Role.ADMIN).scalar() or 0
    journalists = db.session.query(func.count(User.id)).filter(User.role == Role.JOURNALIST).scalar() or 0
    active = db.session.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0
    return {
        "total_users": int(total),
        "admin_count": int(admins),
        "journalist_count": int(journalists),
        "active_users": int(active),
    }
