from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from ..access.records import FEATURE_COLLECTION
from ..config import Settings


class HealthStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    DOWN = "down"
    UNKNOWN = "unknown"


class ServiceKind(str, Enum):
    API = "api"
    DB = "db"
    ANALYTICS = "analytics"
    WORKER = "worker"
    OTHER = "other"


@dataclass(frozen=True)
class HealthCheck:
    type: Literal["http", "firestore"]
    url: str | None = None
    firestore_collection: str | None = None
    firestore_document: str | None = None
    timeout_seconds: float | None = None


@dataclass(frozen=True)
class Service:
    id: str
    name: str
    kind: ServiceKind
    description: str
    status: HealthStatus = HealthStatus.UNKNOWN
    url: str | None = None
    docs_url: str | None = None
    owner: str | None = None
    health_check: HealthCheck | None = None


def build_core_services(settings: Settings) -> list[Service]:
    """Catalog of the services shown on the status page.

    Checks are only attached where the target is configured; the rest
    report their catalog status.
    """
    auth_check = (
        HealthCheck(type="http", url=f"{settings.auth_base_url}/health")
        if settings.auth_base_url
        else None
    )
    project_id = settings.firebase_project_id
    return [
        Service(
            id="auth-api",
            name="Auth API",
            kind=ServiceKind.API,
            description=(
                "Handles login via Discord/Google and issues the session used by "
                "the admin endpoints."
            ),
            status=HealthStatus.OK,
            url=settings.auth_base_url or None,
            owner="Backend",
            health_check=auth_check,
        ),
        Service(
            id="scan-import-api",
            name="Scan Import API",
            kind=ServiceKind.API,
            description="Accepts HAR/CSV uploads and writes parsed scan data into Firestore.",
            owner="Backend",
        ),
        Service(
            id="firestore",
            name="Firestore Database",
            kind=ServiceKind.DB,
            description="Primary database, including the access-control collections.",
            status=HealthStatus.OK,
            url=(
                f"https://console.firebase.google.com/project/{project_id}/firestore/data"
                if project_id
                else None
            ),
            owner="Infra",
            health_check=HealthCheck(type="firestore", firestore_collection=FEATURE_COLLECTION),
        ),
        Service(
            id="goatcounter",
            name="GoatCounter Analytics",
            kind=ServiceKind.ANALYTICS,
            description="Privacy-friendly traffic stats (page views, referrers).",
            status=HealthStatus.OK,
            owner="Analytics",
        ),
    ]
