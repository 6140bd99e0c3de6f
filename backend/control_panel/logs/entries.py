from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Final

from ..access.normalizer import normalize_timestamp

LOG_LEVELS: Final[tuple[str, ...]] = ("error", "warning", "info")
DEFAULT_LOG_LIMIT: Final[int] = 200
MAX_LOG_LIMIT: Final[int] = 500


@dataclass(frozen=True)
class LogEntry:
    id: str
    timestamp: datetime | None
    level: str
    service: str
    message: str
    details: str | None = None
    context: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class AdminLogsPage:
    items: list[LogEntry]
    next_cursor: str | None = None


def normalize_limit(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_LOG_LIMIT
    if value != value or value in (float("inf"), float("-inf")):
        return DEFAULT_LOG_LIMIT
    return min(MAX_LOG_LIMIT, max(1, round(value)))


def normalize_log_entry(raw: Any, index: int = 0) -> LogEntry:
    data: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
    raw_id = data.get("id")
    level = data.get("level")
    service = data.get("service")
    message = data.get("message")
    details = data.get("details")
    context = data.get("context")
    return LogEntry(
        id=str(raw_id) if raw_id not in (None, "") else f"log-{index}",
        timestamp=normalize_timestamp(data.get("timestamp")),
        level=level if level in LOG_LEVELS else "info",
        service=service.strip() if isinstance(service, str) and service.strip() else "other",
        message=message if isinstance(message, str) else "",
        details=details if isinstance(details, str) else None,
        context=context if isinstance(context, Mapping) else None,
    )


def filter_logs(
    entries: Iterable[LogEntry],
    *,
    level: str | None = None,
    service: str | None = None,
    search: str = "",
) -> list[LogEntry]:
    query = search.strip().lower()
    matches: list[LogEntry] = []
    for entry in entries:
        if level and level != "all" and entry.level != level:
            continue
        if service and service != "all" and entry.service != service:
            continue
        if query and query not in f"{entry.message} {entry.details or ''}".lower():
            continue
        matches.append(entry)
    return matches
