from __future__ import annotations

import logging

from ..clients.admin_api import AdminApiClient
from ..errors import AppError
from .entries import DEFAULT_LOG_LIMIT, LogEntry

logger = logging.getLogger("control_panel.logs.feed")

LOAD_FAILED_MESSAGE = "Failed to load logs."


class AdminLogsFeed:
    """Cursor-paginated log stream; ``load_more`` appends the next page."""

    def __init__(self, client: AdminApiClient, *, page_limit: int = DEFAULT_LOG_LIMIT) -> None:
        self._client = client
        self._page_limit = page_limit
        self._entries: list[LogEntry] = []
        self._next_cursor: str | None = None
        self._generation = 0
        self._is_loading = False
        self._error: str | None = None

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    @property
    def next_cursor(self) -> str | None:
        return self._next_cursor

    @property
    def has_more(self) -> bool:
        return bool(self._next_cursor)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> str | None:
        return self._error

    async def load_initial(self) -> None:
        self._generation += 1
        generation = self._generation
        self._is_loading = True
        self._error = None

        try:
            page = await self._client.fetch_admin_logs(limit=self._page_limit)
        except AppError as exc:
            if generation == self._generation:
                self._error = exc.message or LOAD_FAILED_MESSAGE
                self._is_loading = False
                logger.warning("Log load failed: %s", self._error)
            return

        if generation != self._generation:
            logger.debug("Discarding stale log page generation=%s", generation)
            return
        self._entries = list(page.items)
        self._next_cursor = page.next_cursor
        self._is_loading = False
        logger.info("Loaded logs count=%d has_more=%s", len(page.items), self.has_more)

    async def reload(self) -> None:
        await self.load_initial()

    async def load_more(self) -> None:
        cursor = self._next_cursor
        if not cursor:
            return
        generation = self._generation
        self._error = None

        try:
            page = await self._client.fetch_admin_logs(limit=self._page_limit, cursor=cursor)
        except AppError as exc:
            if generation == self._generation:
                self._error = exc.message or LOAD_FAILED_MESSAGE
                logger.warning("Loading more logs failed: %s", self._error)
            return

        # A reload or another page landed first
        if generation != self._generation or cursor != self._next_cursor:
            logger.debug("Discarding stale log page cursor=%s", cursor)
            return
        self._entries.extend(page.items)
        self._next_cursor = page.next_cursor
