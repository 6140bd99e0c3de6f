"""
Role vocabulary shared by the access editor and the admin user screens.

The data model is open-ended: any role string is accepted and stored
lower-cased. Known aliases fold to a canonical four-role set for display
and for ordering.
"""
from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Final


class AccessRole(str, Enum):
    USER = "user"
    MODERATOR = "moderator"
    DEVELOPER = "developer"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: str) -> "AccessRole | str":
        """Return the known variant for ``value`` or the raw string."""
        try:
            return cls(value)
        except ValueError:
            return value


DEFAULT_ROLE: Final[str] = AccessRole.USER.value

# Lowest privilege first
ROLE_PRIORITY: Final[tuple[str, ...]] = (
    AccessRole.USER.value,
    AccessRole.MODERATOR.value,
    AccessRole.DEVELOPER.value,
    AccessRole.ADMIN.value,
)

ROLE_ALIASES: Final[dict[str, str]] = {
    "admin": AccessRole.ADMIN.value,
    "owner": AccessRole.ADMIN.value,
    "moderator": AccessRole.MODERATOR.value,
    "mod": AccessRole.MODERATOR.value,
    "developer": AccessRole.DEVELOPER.value,
    "dev": AccessRole.DEVELOPER.value,
    "creator": AccessRole.DEVELOPER.value,
    "user": AccessRole.USER.value,
}

ROLE_LABELS: Final[dict[str, str]] = {
    "admin": "Admin",
    "owner": "Owner",
    "mod": "Moderator",
    "moderator": "Moderator",
    "developer": "Developer",
    "user": "User",
}

# Role names understood by the auth-api user endpoints
BACKEND_ROLE_BY_CANONICAL: Final[dict[str, str]] = {
    AccessRole.ADMIN.value: "admin",
    AccessRole.MODERATOR.value: "mod",
    AccessRole.DEVELOPER.value: "creator",
    AccessRole.USER.value: "user",
}


def canonical_role(role: object) -> str | None:
    """Fold a raw role onto the canonical set, or None if it is unknown."""
    if not isinstance(role, str):
        return None
    return ROLE_ALIASES.get(role.strip().lower())


def to_backend_role(role: str) -> str:
    canonical = canonical_role(role) or AccessRole.USER.value
    return BACKEND_ROLE_BY_CANONICAL[canonical]


def sort_roles(roles: Iterable[str]) -> list[str]:
    def order_index(role: str) -> int:
        try:
            return ROLE_PRIORITY.index(role)
        except ValueError:
            return len(ROLE_PRIORITY)

    return sorted(roles, key=order_index)


def role_label(role: str | None) -> str:
    if not role:
        return "—"
    return ROLE_LABELS.get(role, role)
