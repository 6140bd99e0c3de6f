from fastapi import APIRouter, Depends, Query

from ..dependencies import get_logs_feed
from .entries import LogEntry, filter_logs
from .feed import AdminLogsFeed
from .schemas import AdminLogsRead, LogEntryRead

router = APIRouter(prefix="/logs", tags=["logs"])


def entry_read(entry: LogEntry) -> LogEntryRead:
    return LogEntryRead(
        id=entry.id,
        timestamp=entry.timestamp,
        level=entry.level,
        service=entry.service,
        message=entry.message,
        details=entry.details,
        context=dict(entry.context) if entry.context is not None else None,
    )


def logs_read(
    feed: AdminLogsFeed,
    *,
    level: str | None = None,
    service: str | None = None,
    search: str = "",
) -> AdminLogsRead:
    entries = filter_logs(feed.entries, level=level, service=service, search=search)
    return AdminLogsRead(
        items=[entry_read(entry) for entry in entries],
        next_cursor=feed.next_cursor,
        has_more=feed.has_more,
        is_loading=feed.is_loading,
        error=feed.error,
    )


@router.get("", response_model=AdminLogsRead)
async def list_logs(
    level: str | None = Query(default=None),
    service: str | None = Query(default=None),
    search: str = Query(default=""),
    feed: AdminLogsFeed = Depends(get_logs_feed),
) -> AdminLogsRead:
    return logs_read(feed, level=level, service=service, search=search)


@router.post("/reload", response_model=AdminLogsRead)
async def reload_logs(feed: AdminLogsFeed = Depends(get_logs_feed)) -> AdminLogsRead:
    await feed.reload()
    return logs_read(feed)


@router.post("/more", response_model=AdminLogsRead)
async def load_more_logs(feed: AdminLogsFeed = Depends(get_logs_feed)) -> AdminLogsRead:
    await feed.load_more()
    return logs_read(feed)
