# Overview: Closed role enum and the actor identity passed to every service call.

from __future__ import annotations

import enum
from dataclasses import dataclass

from .errors import ForbiddenError


class Role(enum.Enum):
    ADMIN = "admin"
    JOURNALIST = "journalist"

    @classmethod
    def parse(cls, value) -> "Role":
        """Accept a Role or its string value; raises ValueError otherwise."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls(value.strip().lower())
        raise ValueError(f"Unknown role: {value!r}")

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


@dataclass(frozen=True)
class Actor:
    """
    The authenticated caller.

    Built once by @require_auth from a verified token and handed to services
    explicitly; services never look at request globals.
    """
    user_id: int
    email: str
    role: Role
    name: str

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_journalist(self) -> bool:
        return self.role is Role.JOURNALIST

    def owns(self, user_id: int | None) -> bool:
        return user_id is not None and int(user_id) == self.user_id

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "role": self.role.value,
            "name": self.name,
        }


def can_view_all(actor: Actor) -> bool:
    """Admins read globally; journalists are scoped to their own rows."""
    if actor.role is Role.ADMIN:
        return True
    if actor.role is Role.JOURNALIST:
        return False
    raise ValueError(f"Unhandled role: {actor.role!r}")


def journalist_scope(actor: Actor) -> int | None:
    """journalist_id filter to apply for `actor`, or None for a global view."""
    return None if can_view_all(actor) else actor.user_id


def ensure_admin(actor: Actor, action: str = "perform this action") -> None:
    """Raise ForbiddenError unless `actor` is an admin."""
    if not can_view_all(actor):
        raise ForbiddenError(f"Only admins can {action}")
