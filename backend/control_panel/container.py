"""
Explicit construction and teardown of the application's collaborators.

Nothing here is a module-level singleton: ``build_container`` creates every
client with its own lifetime and ``close_container`` releases them in
reverse order.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from .access.sources import AdminApiAccessSource, DocumentStoreAccessSource
from .access.store import AccessControlStore
from .access.view_model import AccessFeaturesViewModel
from .clients.admin_api import AdminApiClient
from .config import Settings
from .health.checker import HealthMonitor, ServiceHealthChecker
from .health.services import build_core_services
from .infrastructure.firestore import FirestoreDocumentStore
from .logs.feed import AdminLogsFeed
from .ports.access_source import AccessSnapshotSourcePort
from .users.store import AdminUsersStore

logger = logging.getLogger("control_panel.container")


@dataclass
class ServiceContainer:
    settings: Settings
    admin_client: AdminApiClient
    access_store: AccessControlStore
    access_view_model: AccessFeaturesViewModel
    users_store: AdminUsersStore
    logs_feed: AdminLogsFeed
    health_checker: ServiceHealthChecker
    health_monitor: HealthMonitor
    document_store: FirestoreDocumentStore | None = None


async def build_container(
    settings: Settings,
    *,
    http_client: httpx.AsyncClient | None = None,
    access_source: AccessSnapshotSourcePort | None = None,
) -> ServiceContainer:
    admin_client = AdminApiClient.from_settings(settings, client=http_client)

    document_store: FirestoreDocumentStore | None = None
    if access_source is None:
        if settings.access_source == "admin_api":
            access_source = AdminApiAccessSource(admin_client)
        else:
            document_store = FirestoreDocumentStore(
                project_id=settings.firebase_project_id,
                service_account_json=settings.firebase_service_account_json,
                service_account_path=settings.firebase_service_account_path,
            )
            try:
                await document_store.connect()
            except Exception as exc:
                # Loads report the store as not initialized until a restart fixes the config
                logger.warning("Firestore initialization failed: %s", exc)
            access_source = DocumentStoreAccessSource(document_store)

    access_store = AccessControlStore(access_source)
    health_checker = ServiceHealthChecker(
        client=http_client,
        timeout_seconds=settings.health_check_timeout_seconds,
        firebase_project_id=settings.firebase_project_id,
        firebase_api_key=settings.firebase_api_key,
    )
    logger.info("Built service container access_source=%s", settings.access_source)
    return ServiceContainer(
        settings=settings,
        admin_client=admin_client,
        access_store=access_store,
        access_view_model=AccessFeaturesViewModel(access_store, admin_client),
        users_store=AdminUsersStore(admin_client),
        logs_feed=AdminLogsFeed(admin_client, page_limit=settings.log_page_limit),
        health_checker=health_checker,
        health_monitor=HealthMonitor(health_checker, build_core_services(settings)),
        document_store=document_store,
    )


async def close_container(container: ServiceContainer) -> None:
    await container.health_checker.aclose()
    await container.admin_client.aclose()
    if container.document_store is not None:
        await container.document_store.disconnect()
