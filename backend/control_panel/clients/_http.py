from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from ..errors import AdminApiError, ConfigurationError

logger = logging.getLogger(__name__)

MISSING_BASE_URL_MESSAGE = "AUTH base URL missing (AUTH_BASE_URL)."


class SessionRequester:
    """JSON requester for a session-cookie authenticated backend.

    No automatic retries: a failed call is reported once and retried only
    when the caller asks again.
    """

    def __init__(
        self,
        *,
        base_url: str | None,
        timeout_seconds: float = 10.0,
        cookies: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout_seconds,
            cookies=dict(cookies or {}),
            headers={"accept": "application/json", **dict(headers or {})},
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def ensure_base_url(self) -> str:
        if not self._base_url:
            raise ConfigurationError(MISSING_BASE_URL_MESSAGE)
        return self._base_url

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        url = f"{self.ensure_base_url()}/{path.lstrip('/')}"
        try:
            response = await self._client.request(method, url, json=json, params=params)
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise AdminApiError(f"Connection error: {exc}") from exc

        if response.is_success:
            return decode_body(response)

        detail = extract_error_detail(response)
        logger.warning("%s %s returned %s: %s", method, url, response.status_code, detail)
        raise AdminApiError(
            f"Request failed ({response.status_code}): {detail}",
            upstream_status=response.status_code,
        )


def decode_body(response: httpx.Response) -> Any:
    """Decode a successful response; an empty or non-JSON body means no data."""
    if response.status_code == httpx.codes.NO_CONTENT or not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        logger.warning("Ignoring non-JSON body from %s", response.request.url)
        return {}


def extract_error_detail(response: httpx.Response) -> str:
    fallback = response.reason_phrase or f"Failed with status {response.status_code}."
    try:
        body = response.json()
    except ValueError:
        return fallback
    if not isinstance(body, Mapping):
        return fallback

    error = body.get("error")
    if isinstance(error, Mapping):
        error = error.get("message")
    if isinstance(error, str) and error.strip():
        return error.strip()
    message = body.get("message")
    if isinstance(message, str) and message.strip():
        return message.strip()
    return fallback
