"""
Normalization of raw feature-access and access-group documents.

Every function here is total: malformed or missing fields degrade to a
documented default and nothing raises. Normalizing an already-normalized
record (or its ``to_document()`` output) yields an equal record.
"""
from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any

from google.protobuf.timestamp_pb2 import Timestamp

from ..roles import DEFAULT_ROLE
from .records import (
    DEFAULT_AREA,
    DEFAULT_ROUTE,
    DEFAULT_STATUS,
    AccessGroupRecord,
    FeatureAccessRecord,
)

# fromisoformat before 3.11 only takes 3 or 6 fractional digits
_ISO_FRACTION = re.compile(r"([T ]\d{2}:\d{2}:\d{2})\.(\d+)")


def _fraction_to_micros(match: re.Match[str]) -> str:
    return f"{match.group(1)}.{match.group(2)[:6].ljust(6, '0')}"


def normalize_timestamp(value: Any) -> datetime | None:
    """Coerce a stored timestamp into an aware datetime, or None.

    Accepts Firestore timestamps (``DatetimeWithNanoseconds`` is a datetime
    subclass, protobuf ``Timestamp`` is converted), dates, epoch
    milliseconds and ISO-8601 strings.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, Timestamp):
        return value.ToDatetime(tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = f"{text[:-1]}+00:00"
        text = _ISO_FRACTION.sub(_fraction_to_micros, text, count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def normalize_role(value: Any, fallback: str = DEFAULT_ROLE) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip().lower()
    return fallback


def normalize_role_array(value: Any) -> tuple[str, ...] | None:
    if not isinstance(value, (list, tuple)):
        return None
    roles: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            continue
        role = item.strip().lower()
        if role not in roles:
            roles.append(role)
    return tuple(roles) or None


def normalize_string_array(value: Any) -> tuple[str, ...] | None:
    if not isinstance(value, (list, tuple)):
        return None
    entries: list[str] = []
    for item in value:
        if not isinstance(item, str):
            continue
        text = item.strip()
        if text and text not in entries:
            entries.append(text)
    return tuple(entries) or None


def normalize_status(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip().lower()
    return DEFAULT_STATUS


def _text_or(value: Any, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return fallback


def _optional_text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _nav_order(value: Any) -> int | float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value if math.isfinite(value) else None


def _fields(raw: Any) -> Mapping[str, Any]:
    if isinstance(raw, (FeatureAccessRecord, AccessGroupRecord)):
        return raw.to_document()
    if isinstance(raw, Mapping):
        return raw
    return {}


def normalize_feature_access(doc_id: str, raw: Any) -> FeatureAccessRecord:
    data = _fields(raw)
    feature_id = str(doc_id)
    return FeatureAccessRecord(
        id=feature_id,
        route=_text_or(data.get("route"), DEFAULT_ROUTE),
        area=_text_or(data.get("area"), DEFAULT_AREA),
        title_key=_text_or(data.get("titleKey"), feature_id),
        status=normalize_status(data.get("status")),
        min_role=normalize_role(data.get("minRole")),
        allowed_roles=normalize_role_array(data.get("allowedRoles")),
        allowed_groups=normalize_string_array(data.get("allowedGroups")),
        allowed_user_ids=normalize_string_array(data.get("allowedUserIds")),
        show_in_topbar=data.get("showInTopbar") is True,
        show_in_sidebar=data.get("showInSidebar") is True,
        nav_order=_nav_order(data.get("navOrder")),
        is_experimental=data.get("isExperimental") is True,
        created_at=normalize_timestamp(data.get("createdAt")),
        updated_at=normalize_timestamp(data.get("updatedAt")),
        created_by=_optional_text(data.get("createdBy")),
        updated_by=_optional_text(data.get("updatedBy")),
    )


def normalize_access_group(doc_id: str, raw: Any) -> AccessGroupRecord:
    data = _fields(raw)
    group_id = str(doc_id)
    raw_min_role = data.get("minRole")
    return AccessGroupRecord(
        id=group_id,
        label=_text_or(data.get("label"), group_id),
        description=_optional_text(data.get("description")),
        user_ids=normalize_string_array(data.get("userIds")),
        min_role=normalize_role(raw_min_role) if isinstance(raw_min_role, str) and raw_min_role.strip() else None,
        allowed_roles=normalize_role_array(data.get("allowedRoles")),
        is_system=data.get("isSystem") is True,
        created_at=normalize_timestamp(data.get("createdAt")),
        updated_at=normalize_timestamp(data.get("updatedAt")),
        created_by=_optional_text(data.get("createdBy")),
        updated_by=_optional_text(data.get("updatedBy")),
    )


def feature_sort_key(record: FeatureAccessRecord) -> tuple[float, str]:
    """navOrder ascending with unset last, then route."""
    order = record.nav_order if record.nav_order is not None else math.inf
    return (order, record.route)


def sort_features(records: list[FeatureAccessRecord]) -> list[FeatureAccessRecord]:
    return sorted(records, key=feature_sort_key)


def sort_groups(records: list[AccessGroupRecord]) -> list[AccessGroupRecord]:
    return sorted(records, key=lambda record: record.id)
