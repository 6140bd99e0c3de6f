from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Final

from ..access.normalizer import normalize_timestamp
from ..roles import DEFAULT_ROLE, canonical_role, sort_roles

UNKNOWN_USER_ID: Final[str] = "unknown-user"
USER_STATUSES: Final[tuple[str, ...]] = ("active", "suspended", "banned")
AUTH_PROVIDERS: Final[tuple[str, ...]] = ("discord", "google")


@dataclass(frozen=True)
class ProviderEntry:
    id: str
    display_name: str | None = None
    avatar_url: str | None = None


@dataclass(frozen=True)
class AdminUser:
    id: str
    user_id: str
    display_name: str | None = None
    avatar_url: str | None = None
    primary_provider: str | None = None
    providers: dict[str, ProviderEntry] | None = None
    profile: Mapping[str, Any] | None = None
    roles: tuple[str, ...] = (DEFAULT_ROLE,)
    status: str = "active"
    created_at: datetime | None = None
    last_login_at: datetime | None = None
    notes: str | None = None
    flags: tuple[str, ...] | None = None
    is_system: bool = False


@dataclass(frozen=True)
class AdminUsersSummary:
    admins: int = 0
    moderators: int = 0
    suspended: int = 0
    banned: int = 0
    system: int = 0


def normalize_user_roles(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return (DEFAULT_ROLE,)
    roles: list[str] = []
    for item in value:
        role = canonical_role(item)
        if role and role not in roles:
            roles.append(role)
    return tuple(sort_roles(roles)) if roles else (DEFAULT_ROLE,)


def normalize_user_status(value: Any) -> str:
    if isinstance(value, str) and value in USER_STATUSES:
        return value
    return "active"


def normalize_providers(value: Any) -> dict[str, ProviderEntry] | None:
    if not isinstance(value, Mapping):
        return None
    entries: dict[str, ProviderEntry] = {}
    for key, entry in value.items():
        if key not in AUTH_PROVIDERS or not isinstance(entry, Mapping):
            continue
        display_name = entry.get("displayName")
        avatar_url = entry.get("avatarUrl")
        raw_id = entry.get("id")
        entries[key] = ProviderEntry(
            id="" if raw_id is None else str(raw_id),
            display_name=display_name if isinstance(display_name, str) else None,
            avatar_url=avatar_url if isinstance(avatar_url, str) else None,
        )
    return entries or None


def normalize_admin_user(raw: Any) -> AdminUser:
    data: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}

    raw_id = data.get("id")
    user_id = raw_id if isinstance(raw_id, str) and raw_id else UNKNOWN_USER_ID
    raw_user_id = data.get("userId")
    profile = data.get("profile") if isinstance(data.get("profile"), Mapping) else None

    display_name = data.get("displayName")
    if not (isinstance(display_name, str) and display_name):
        profile_name = profile.get("displayName") if profile else None
        display_name = profile_name if isinstance(profile_name, str) else None

    raw_flags = data.get("flags")
    flags = (
        tuple(str(flag) for flag in raw_flags)
        if isinstance(raw_flags, (list, tuple))
        else None
    )
    primary_provider = data.get("primaryProvider")
    avatar_url = data.get("avatarUrl")
    notes = data.get("notes")

    return AdminUser(
        id=user_id,
        user_id=raw_user_id if isinstance(raw_user_id, str) and raw_user_id else user_id,
        display_name=display_name,
        avatar_url=avatar_url if isinstance(avatar_url, str) else None,
        primary_provider=primary_provider if primary_provider in AUTH_PROVIDERS else None,
        providers=normalize_providers(data.get("providers")),
        profile=profile,
        roles=normalize_user_roles(data.get("roles")),
        status=normalize_user_status(data.get("status")),
        created_at=normalize_timestamp(data.get("createdAt")),
        last_login_at=normalize_timestamp(data.get("lastLoginAt")),
        notes=notes if isinstance(notes, str) else None,
        flags=flags,
        is_system=(
            data.get("isSystem") is True
            or data.get("system") is True
            or "system" in (flags or ())
        ),
    )


def summarize_users(users: list[AdminUser]) -> AdminUsersSummary:
    admins = moderators = suspended = banned = system = 0
    for user in users:
        if "admin" in user.roles:
            admins += 1
        if "moderator" in user.roles:
            moderators += 1
        if user.status == "suspended":
            suspended += 1
        if user.status == "banned":
            banned += 1
        if user.is_system:
            system += 1
    return AdminUsersSummary(
        admins=admins,
        moderators=moderators,
        suspended=suspended,
        banned=banned,
        system=system,
    )
