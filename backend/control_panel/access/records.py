from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any, Final

from ..roles import AccessRole


class FeatureStatus(str, Enum):
    PUBLIC = "public"
    LOGGED_IN = "logged_in"
    BETA = "beta"
    DEV_ONLY = "dev_only"
    HIDDEN = "hidden"

    @classmethod
    def parse(cls, value: str) -> "FeatureStatus | str":
        """Return the known variant for ``value`` or the raw string."""
        try:
            return cls(value)
        except ValueError:
            return value


DEFAULT_STATUS: Final[str] = FeatureStatus.HIDDEN.value
DEFAULT_AREA: Final[str] = "controlPanel"
DEFAULT_ROUTE: Final[str] = "/"

FEATURE_COLLECTION: Final[str] = "feature_access"
GROUP_COLLECTION: Final[str] = "access_groups"

# Attribute name -> document field name
FEATURE_DOCUMENT_FIELDS: Final[dict[str, str]] = {
    "route": "route",
    "area": "area",
    "title_key": "titleKey",
    "status": "status",
    "min_role": "minRole",
    "allowed_roles": "allowedRoles",
    "allowed_groups": "allowedGroups",
    "allowed_user_ids": "allowedUserIds",
    "show_in_topbar": "showInTopbar",
    "show_in_sidebar": "showInSidebar",
    "nav_order": "navOrder",
    "is_experimental": "isExperimental",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "created_by": "createdBy",
    "updated_by": "updatedBy",
}

GROUP_DOCUMENT_FIELDS: Final[dict[str, str]] = {
    "label": "label",
    "description": "description",
    "user_ids": "userIds",
    "min_role": "minRole",
    "allowed_roles": "allowedRoles",
    "is_system": "isSystem",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "created_by": "createdBy",
    "updated_by": "updatedBy",
}


@dataclass(frozen=True)
class FeatureAccessRecord:
    """Visibility and access rule for one navigable feature.

    Array fields are either None or non-empty, so "has restriction" can be
    tested by truthiness alone.
    """

    id: str
    route: str = DEFAULT_ROUTE
    area: str = DEFAULT_AREA
    title_key: str = ""
    status: str = DEFAULT_STATUS
    min_role: str = "user"
    allowed_roles: tuple[str, ...] | None = None
    allowed_groups: tuple[str, ...] | None = None
    allowed_user_ids: tuple[str, ...] | None = None
    show_in_topbar: bool = False
    show_in_sidebar: bool = False
    nav_order: int | float | None = None
    is_experimental: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str | None = None
    updated_by: str | None = None

    @property
    def known_status(self) -> FeatureStatus | str:
        return FeatureStatus.parse(self.status)

    @property
    def known_min_role(self) -> AccessRole | str:
        return AccessRole.parse(self.min_role)

    def to_document(self) -> dict[str, Any]:
        return _to_document(self, FEATURE_DOCUMENT_FIELDS)


@dataclass(frozen=True)
class AccessGroupRecord:
    id: str
    label: str = ""
    description: str | None = None
    user_ids: tuple[str, ...] | None = None
    min_role: str | None = None
    allowed_roles: tuple[str, ...] | None = None
    is_system: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str | None = None
    updated_by: str | None = None

    def to_document(self) -> dict[str, Any]:
        return _to_document(self, GROUP_DOCUMENT_FIELDS)


def _to_document(record: object, mapping: dict[str, str]) -> dict[str, Any]:
    document: dict[str, Any] = {}
    for item in fields(record):  # type: ignore[arg-type]
        if item.name == "id":
            continue
        value = getattr(record, item.name)
        if value is None:
            continue
        if isinstance(value, tuple):
            value = list(value)
        document[mapping[item.name]] = value
    return document
