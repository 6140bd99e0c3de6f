"""
Service health checks.

Every check is bounded by ``asyncio.wait_for``: once the timeout passes the
service is reported down, whether or not the underlying request would
ever have finished.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

from .services import HealthStatus, Service

logger = logging.getLogger("control_panel.health")

FIRESTORE_REST_BASE = "https://firestore.googleapis.com/v1"
DEFAULT_TIMEOUT_SECONDS = 6.0


@dataclass(frozen=True)
class ServiceHealthEntry:
    status: HealthStatus
    latency_ms: int | None = None
    checked_at: datetime | None = None
    error_message: str | None = None


def map_http_status(status_code: int) -> HealthStatus:
    if status_code == 200:
        return HealthStatus.OK
    if status_code >= 500:
        return HealthStatus.DOWN
    if status_code >= 400:
        return HealthStatus.DEGRADED
    return HealthStatus.UNKNOWN


def map_firestore_status(status_code: int) -> HealthStatus:
    if 200 <= status_code < 300:
        return HealthStatus.OK
    if status_code >= 500:
        return HealthStatus.DOWN
    return HealthStatus.DEGRADED


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ServiceHealthChecker:
    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        firebase_project_id: str | None = None,
        firebase_api_key: str | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()
        self._timeout_seconds = timeout_seconds
        self._firebase_project_id = firebase_project_id
        self._firebase_api_key = firebase_api_key

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def check(self, service: Service) -> ServiceHealthEntry:
        health_check = service.health_check
        if health_check is None:
            return ServiceHealthEntry(status=service.status)

        timeout = health_check.timeout_seconds or self._timeout_seconds
        if health_check.type == "http":
            if not health_check.url:
                return ServiceHealthEntry(
                    status=HealthStatus.UNKNOWN,
                    checked_at=_now(),
                    error_message="Missing health check URL",
                )
            return await self._bounded(
                service.id,
                lambda: self._client.get(health_check.url),
                map_http_status,
                timeout,
            )

        if not self._firebase_project_id:
            return ServiceHealthEntry(
                status=HealthStatus.UNKNOWN,
                checked_at=_now(),
                error_message="Missing Firestore project id (FIREBASE_PROJECT_ID)",
            )
        target = health_check.firestore_collection or ""
        if health_check.firestore_document:
            target = f"{target}/{health_check.firestore_document}"
        url = (
            f"{FIRESTORE_REST_BASE}/projects/{self._firebase_project_id}"
            f"/databases/(default)/documents/{target}"
        )
        params = {"pageSize": "1"}
        if self._firebase_api_key:
            params["key"] = self._firebase_api_key
        return await self._bounded(
            service.id,
            lambda: self._client.get(url, params=params),
            map_firestore_status,
            timeout,
        )

    async def _bounded(
        self,
        service_id: str,
        probe: Callable[[], Awaitable[httpx.Response]],
        classify: Callable[[int], HealthStatus],
        timeout: float,
    ) -> ServiceHealthEntry:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(probe(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Health check for %s timed out after %ss", service_id, timeout)
            return ServiceHealthEntry(
                status=HealthStatus.DOWN,
                latency_ms=_elapsed_ms(start),
                checked_at=_now(),
                error_message=f"Timed out after {timeout:g}s",
            )
        except httpx.RequestError as exc:
            logger.warning("Health check for %s failed: %s", service_id, exc)
            return ServiceHealthEntry(
                status=HealthStatus.DOWN,
                latency_ms=_elapsed_ms(start),
                checked_at=_now(),
                error_message=str(exc) or "Network error",
            )

        return ServiceHealthEntry(
            status=classify(response.status_code),
            latency_ms=_elapsed_ms(start),
            checked_at=_now(),
            error_message=None if response.is_success else f"HTTP {response.status_code}",
        )


def _elapsed_ms(start: float) -> int:
    return round((time.monotonic() - start) * 1000)


class HealthMonitor:
    """Latest health result per service, refreshed on demand."""

    def __init__(self, checker: ServiceHealthChecker, services: Sequence[Service]) -> None:
        self._checker = checker
        self._services = list(services)
        self._health: dict[str, ServiceHealthEntry] = {}
        self._is_loading = False

    @property
    def services(self) -> list[Service]:
        return list(self._services)

    @property
    def health(self) -> dict[str, ServiceHealthEntry]:
        return dict(self._health)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    async def refresh(self) -> dict[str, ServiceHealthEntry]:
        self._is_loading = True
        try:
            entries = await asyncio.gather(
                *(self._checker.check(service) for service in self._services)
            )
        finally:
            self._is_loading = False
        self._health = {
            service.id: entry for service, entry in zip(self._services, entries)
        }
        return self.health
