from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Final

from ..roles import role_label
from .records import AccessGroupRecord, FeatureAccessRecord, FeatureStatus

EMPTY_DISPLAY: Final[str] = "—"
ALL_STATUSES: Final[str] = "all"

STATUS_LABELS: Final[dict[str, str]] = {
    FeatureStatus.PUBLIC.value: "Public",
    FeatureStatus.LOGGED_IN.value: "Logged in",
    FeatureStatus.BETA.value: "Beta",
    FeatureStatus.DEV_ONLY.value: "Dev only",
    FeatureStatus.HIDDEN.value: "Hidden",
}


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def format_timestamp(value: datetime | None, now: datetime | None = None) -> str:
    """Relative time for recent values, an absolute date for older ones."""
    if value is None:
        return EMPTY_DISPLAY
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)

    diff = (value - current).total_seconds()
    future = diff >= 0
    seconds = abs(diff)

    minutes = _round_half_up(seconds / 60)
    if minutes < 90:
        return f"in {minutes}m" if future else f"{minutes}m ago"
    hours = _round_half_up(seconds / 3600)
    if hours < 48:
        return f"in {hours}h" if future else f"{hours}h ago"
    days = _round_half_up(seconds / 86400)
    if days < 10:
        return f"in {days}d" if future else f"{days}d ago"
    return value.strftime("%b %d, %Y, %H:%M")


def _normalize_search(value: str | None) -> str:
    return (value or "").strip().lower()


def filter_features(
    features: Iterable[FeatureAccessRecord],
    search: str | None = None,
    status: str | None = ALL_STATUSES,
) -> list[FeatureAccessRecord]:
    query = _normalize_search(search)
    matches: list[FeatureAccessRecord] = []
    for feature in features:
        if status and status != ALL_STATUSES and feature.status != status:
            continue
        if query and query not in f"{feature.route} {feature.title_key} {feature.area}".lower():
            continue
        matches.append(feature)
    return matches


def filter_groups(
    groups: Iterable[AccessGroupRecord], search: str | None = None
) -> list[AccessGroupRecord]:
    query = _normalize_search(search)
    if not query:
        return list(groups)
    return [group for group in groups if query in f"{group.id} {group.label}".lower()]


__all__ = [
    "ALL_STATUSES",
    "EMPTY_DISPLAY",
    "filter_features",
    "filter_groups",
    "format_timestamp",
    "role_label",
    "status_label",
]
