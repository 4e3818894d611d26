# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import UnauthorizedError
from .roles import Role
from .services import token_service


def _is_authenticated() -> bool:
    return getattr(g, "actor", None) is not None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.actor (an Actor) for the route, which passes it explicitly to
    every service call.

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, tampered or expired token
    - User account deleted or deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()

        try:
            g.actor = token_service.decode_token(token)
        except UnauthorizedError as e:
            return jsonify(e.to_dict()), 401

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: Role):
    """
    Require the caller's role to be in the allow-list.

    Must be stacked under @require_auth. Authenticated callers outside the
    list get 403, distinct from the 401 for a missing credential.
    """
    allowed = frozenset(roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.actor.role not in allowed:
                return jsonify({
                    "error": "Access denied",
                    "required_roles": sorted(role.value for role in allowed),
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator


def require_admin(f):
    return require_role(Role.ADMIN)(f)
