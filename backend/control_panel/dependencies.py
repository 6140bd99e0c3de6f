from fastapi import Request

from .access.view_model import AccessFeaturesViewModel
from .container import ServiceContainer
from .errors import ConfigurationError
from .health.checker import HealthMonitor
from .logs.feed import AdminLogsFeed
from .users.store import AdminUsersStore


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise ConfigurationError("Service container is not initialized")
    return container


def get_access_view_model(request: Request) -> AccessFeaturesViewModel:
    return get_container(request).access_view_model


def get_users_store(request: Request) -> AdminUsersStore:
    return get_container(request).users_store


def get_logs_feed(request: Request) -> AdminLogsFeed:
    return get_container(request).logs_feed


def get_health_monitor(request: Request) -> HealthMonitor:
    return get_container(request).health_monitor
