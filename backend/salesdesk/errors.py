# Overview: Error taxonomy shared by services and routes, plus translation of database constraint failures.

"""
Every service raises one of these. The app-level handler in create_app()
turns them into JSON responses with the matching status code, so routes
only catch what they need to clean up after.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError


class AppError(Exception):
    """Base for all expected, request-scoped failures."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    """400-level input problem."""
    status_code = 400


class InvalidStateError(AppError):
    """Operation not allowed in the entity's current lifecycle state."""
    status_code = 400


class UnauthorizedError(AppError):
    """Missing, invalid or expired credential."""
    status_code = 401


class ForbiddenError(AppError):
    """Authenticated, but role or ownership does not allow the action."""
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """409-level uniqueness or business rule conflict (e.g., duplicate invoice)."""
    status_code = 409


class InternalError(AppError):
    status_code = 500


# Substrings emitted by SQLite and PostgreSQL drivers for each constraint kind
_UNIQUE_MARKERS = ("unique constraint", "duplicate key", "unique failed")
_FOREIGN_KEY_MARKERS = ("foreign key",)
_NOT_NULL_MARKERS = ("not null", "not-null", "null value")


def from_integrity_error(exc: IntegrityError, message: str | None = None) -> AppError:
    """
    Map a database constraint violation to the taxonomy.

    The driver text is inspected but never returned to the client.
    """
    text = str(getattr(exc, "orig", exc)).lower()

    if any(marker in text for marker in _UNIQUE_MARKERS):
        return ConflictError(message or "Duplicate entry: a record with this information already exists")
    if any(marker in text for marker in _FOREIGN_KEY_MARKERS):
        return ValidationError(message or "Invalid reference: referenced record does not exist")
    if any(marker in text for marker in _NOT_NULL_MARKERS):
        return ValidationError(message or "Missing required field")
    return ConflictError(message or "Database constraint violated")
