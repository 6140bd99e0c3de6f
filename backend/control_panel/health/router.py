from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..dependencies import get_health_monitor
from .checker import HealthMonitor, ServiceHealthEntry
from .services import Service

router = APIRouter(prefix="/services", tags=["services"])


class ServiceHealthRead(BaseModel):
    id: str
    name: str
    kind: str
    description: str
    url: str | None
    owner: str | None
    status: str
    latency_ms: int | None
    checked_at: datetime | None
    error_message: str | None


def health_read(service: Service, entry: ServiceHealthEntry | None) -> ServiceHealthRead:
    return ServiceHealthRead(
        id=service.id,
        name=service.name,
        kind=service.kind.value,
        description=service.description,
        url=service.url,
        owner=service.owner,
        status=(entry.status if entry else service.status).value,
        latency_ms=entry.latency_ms if entry else None,
        checked_at=entry.checked_at if entry else None,
        error_message=entry.error_message if entry else None,
    )


def _monitor_read(monitor: HealthMonitor) -> list[ServiceHealthRead]:
    health = monitor.health
    return [health_read(service, health.get(service.id)) for service in monitor.services]


@router.get("/health", response_model=list[ServiceHealthRead])
async def list_service_health(
    monitor: HealthMonitor = Depends(get_health_monitor),
) -> list[ServiceHealthRead]:
    return _monitor_read(monitor)


@router.post("/health/refresh", response_model=list[ServiceHealthRead])
async def refresh_service_health(
    monitor: HealthMonitor = Depends(get_health_monitor),
) -> list[ServiceHealthRead]:
    await monitor.refresh()
    return _monitor_read(monitor)
