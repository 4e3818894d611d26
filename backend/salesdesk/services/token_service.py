# Overview: Signed, time-limited bearer tokens and their resolution to an Actor.

"""
Tokens are stateless: an itsdangerous URLSafeTimedSerializer signs
{user_id, email, role, name} with SECRET_KEY. Logout is therefore a client
side concern.

WHY re-check the user on decode: a deactivated or deleted account must lose
access immediately, not when its token expires. The Actor is built from the
current row so a role change also applies at once.
"""

from __future__ import annotations

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..errors import UnauthorizedError
from ..extensions import db
from ..models import User
from ..roles import Actor

TOKEN_SALT = "salesdesk-auth"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def issue_token(user: User) -> str:
    payload = {
        "user_id": user.id,
        "email": user.email,
        "role": user.role.value,
        "name": user.full_name,
    }
    return _serializer().dumps(payload)


def decode_token(token: str) -> Actor:
    """
    Verify a bearer token and return the caller.

    Raises UnauthorizedError for a bad signature, an expired token, or an
    account that no longer exists or is inactive.
    """
    max_age = int(current_app.config.get("TOKEN_MAX_AGE_SECONDS", 7 * 24 * 60 * 60))
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        raise UnauthorizedError("Token expired")
    except BadSignature:
        raise UnauthorizedError("Invalid token")

    user_id = payload.get("user_id") if isinstance(payload, dict) else None
    if not isinstance(user_id, int):
        raise UnauthorizedError("Invalid token")

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        raise UnauthorizedError("Invalid or expired token")

    return Actor(
        user_id=user.id,
        email=user.email,
        role=user.role,
        name=user.full_name,
    )
