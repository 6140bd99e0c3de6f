"""
Client for the auth-api admin endpoints.

Endpoints:
  - GET   /admin/access-control
  - PATCH /admin/access-control/features/{id}
  - PATCH /admin/access-control/groups/{id}
  - GET   /admin/users
  - PATCH /admin/users/{userId}/roles
  - GET   /admin/logs?limit=&cursor=

Auth is the staff session cookie. Every failure surfaces as an
``AdminApiError`` (or ``ConfigurationError`` before any network call when
no base URL is configured) carrying a human-readable message.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import quote

import httpx

from ..access.schemas import AccessGroupUpdate, FeatureAccessUpdate
from ..config import Settings
from ..errors import AdminApiError, ValidationError
from ..logs.entries import AdminLogsPage, normalize_limit, normalize_log_entry
from ..roles import DEFAULT_ROLE, to_backend_role
from ..users.normalizer import AdminUser, normalize_admin_user
from ._http import SessionRequester


def _payload(
    model: type[FeatureAccessUpdate] | type[AccessGroupUpdate],
    payload: FeatureAccessUpdate | AccessGroupUpdate | Mapping[str, Any],
) -> dict[str, Any]:
    if not isinstance(payload, model):
        payload = model.model_validate(dict(payload))
    body = payload.model_dump(by_alias=True, exclude_unset=True)
    if not body:
        raise ValidationError("No fields to update.")
    return body


class AdminApiClient:
    def __init__(self, requester: SessionRequester) -> None:
        self._requester = requester

    @classmethod
    def from_settings(
        cls, settings: Settings, *, client: httpx.AsyncClient | None = None
    ) -> "AdminApiClient":
        cookies = (
            {settings.auth_session_cookie_name: settings.auth_session_token}
            if settings.auth_session_token
            else None
        )
        return cls(
            SessionRequester(
                base_url=settings.auth_base_url,
                timeout_seconds=settings.admin_api_timeout_seconds,
                cookies=cookies,
                client=client,
            )
        )

    async def aclose(self) -> None:
        await self._requester.aclose()

    # -------- Access control --------

    async def fetch_access_config(self) -> Mapping[str, Any]:
        data = await self._requester.request_json("GET", "/admin/access-control")
        return data if isinstance(data, Mapping) else {}

    async def update_feature_access(
        self,
        feature_id: str,
        payload: FeatureAccessUpdate | Mapping[str, Any],
    ) -> Any:
        self._requester.ensure_base_url()
        if not feature_id:
            raise ValidationError("Feature id is required.")
        body = _payload(FeatureAccessUpdate, payload)
        return await self._requester.request_json(
            "PATCH",
            f"/admin/access-control/features/{quote(feature_id, safe='')}",
            json=body,
        )

    async def update_access_group(
        self,
        group_id: str,
        payload: AccessGroupUpdate | Mapping[str, Any],
    ) -> Any:
        self._requester.ensure_base_url()
        if not group_id:
            raise ValidationError("Group id is required.")
        body = _payload(AccessGroupUpdate, payload)
        return await self._requester.request_json(
            "PATCH",
            f"/admin/access-control/groups/{quote(group_id, safe='')}",
            json=body,
        )

    # -------- Users --------

    async def fetch_admin_users(self) -> list[AdminUser]:
        data = await self._requester.request_json("GET", "/admin/users")
        incoming = data.get("users") if isinstance(data, Mapping) else None
        if not isinstance(incoming, list):
            return []
        return [normalize_admin_user(item) for item in incoming]

    async def update_user_roles(self, user_id: str, roles: Sequence[str]) -> AdminUser:
        self._requester.ensure_base_url()
        if not user_id:
            raise ValidationError("User id is required to update roles.")

        payload_roles: list[str] = []
        for role in roles:
            backend_role = to_backend_role(role)
            if backend_role not in payload_roles:
                payload_roles.append(backend_role)
        if not payload_roles:
            payload_roles.append(to_backend_role(DEFAULT_ROLE))

        data = await self._requester.request_json(
            "PATCH",
            f"/admin/users/{quote(user_id, safe='')}/roles",
            json={"roles": payload_roles},
        )
        user = data.get("user") if isinstance(data, Mapping) else None
        return normalize_admin_user(user if isinstance(user, Mapping) else data)

    # -------- Logs --------

    async def fetch_admin_logs(
        self, *, limit: int | None = None, cursor: str | None = None
    ) -> AdminLogsPage:
        params = {"limit": str(normalize_limit(limit))}
        if isinstance(cursor, str) and cursor:
            params["cursor"] = cursor

        data = await self._requester.request_json("GET", "/admin/logs", params=params)
        payload: Mapping[str, Any] = data if isinstance(data, Mapping) else {}
        items = payload.get("items")
        if payload.get("ok") is not True or not isinstance(items, list):
            detail = payload.get("error")
            raise AdminApiError(
                detail if isinstance(detail, str) and detail else "Failed to load logs."
            )

        next_cursor = payload.get("nextCursor")
        return AdminLogsPage(
            items=[normalize_log_entry(item, index) for index, item in enumerate(items)],
            next_cursor=next_cursor if isinstance(next_cursor, str) and next_cursor else None,
        )


__all__ = ["AdminApiClient"]
