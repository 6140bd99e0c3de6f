from __future__ import annotations

import logging
from collections.abc import Sequence

from ..clients.admin_api import AdminApiClient
from ..errors import AppError, NotFoundError
from .normalizer import AdminUser, AdminUsersSummary, summarize_users

logger = logging.getLogger("control_panel.users.store")

LOAD_FAILED_MESSAGE = "Unexpected error while loading admin users."


class AdminUsersStore:
    """Snapshot of the admin user list with per-user role update failures.

    Loads follow the access store contract: newest load wins, failures
    clear the list and set ``error``. A failed role update only records an
    error for that user.
    """

    def __init__(self, client: AdminApiClient) -> None:
        self._client = client
        self._users: tuple[AdminUser, ...] = ()
        self._generation = 0
        self._is_loading = False
        self._error: str | None = None
        self._update_errors: dict[str, str] = {}
        self._updating: set[str] = set()

    @property
    def users(self) -> list[AdminUser]:
        return list(self._users)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def update_errors(self) -> dict[str, str]:
        return dict(self._update_errors)

    def is_updating(self, user_id: str) -> bool:
        return user_id in self._updating

    def summary(self) -> AdminUsersSummary:
        return summarize_users(list(self._users))

    def get_user(self, user_id: str) -> AdminUser | None:
        return next((user for user in self._users if user.id == user_id), None)

    async def load(self) -> None:
        self._generation += 1
        generation = self._generation
        self._is_loading = True
        self._error = None

        try:
            users = await self._client.fetch_admin_users()
        except Exception as exc:
            if generation != self._generation:
                return
            message = (exc.message if isinstance(exc, AppError) else str(exc)).strip()
            logger.warning("Admin users load failed: %s", message or LOAD_FAILED_MESSAGE)
            self._users = ()
            self._error = message or LOAD_FAILED_MESSAGE
            self._is_loading = False
            return

        if generation != self._generation:
            logger.debug("Discarding stale admin users load generation=%s", generation)
            return
        self._users = tuple(users)
        self._is_loading = False
        logger.info("Loaded admin users count=%d", len(users))

    async def refresh(self) -> None:
        await self.load()

    async def update_roles(self, user_id: str, roles: Sequence[str]) -> AdminUser:
        if self.get_user(user_id) is None:
            raise NotFoundError(f"User {user_id} not found")

        self._updating.add(user_id)
        self._update_errors.pop(user_id, None)
        try:
            updated = await self._client.update_user_roles(user_id, roles)
        except AppError as exc:
            self._update_errors[user_id] = exc.message
            logger.warning("Role update failed user=%s: %s", user_id, exc.message)
            raise
        finally:
            self._updating.discard(user_id)

        self._users = tuple(updated if user.id == user_id else user for user in self._users)
        logger.info("Updated roles user=%s roles=%s", user_id, ",".join(updated.roles))
        return updated
