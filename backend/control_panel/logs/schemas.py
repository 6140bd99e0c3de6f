from datetime import datetime
from typing import Any

from pydantic import BaseModel


class LogEntryRead(BaseModel):
    id: str
    timestamp: datetime | None
    level: str
    service: str
    message: str
    details: str | None
    context: dict[str, Any] | None


class AdminLogsRead(BaseModel):
    items: list[LogEntryRead]
    next_cursor: str | None
    has_more: bool
    is_loading: bool
    error: str | None
