import json

import httpx
import pytest
from fastapi.testclient import TestClient

from control_panel.access.sources import DocumentStoreAccessSource
from control_panel.access.store import AccessControlStore
from control_panel.access.view_model import AccessFeaturesViewModel
from control_panel.config import Settings
from control_panel.container import ServiceContainer
from control_panel.health.checker import HealthMonitor, ServiceHealthChecker
from control_panel.health.services import build_core_services
from control_panel.logs.feed import AdminLogsFeed
from control_panel.main import app
from control_panel.users.store import AdminUsersStore
from tests.access_helpers import BASE_URL, FakeDocumentStore, feature_doc, make_admin_client


class AdminBackend:
    def __init__(self) -> None:
        self.patches: list[tuple[str, dict]] = []
        self.forbid_patches = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "PATCH":
            if self.forbid_patches:
                return httpx.Response(403, json={"error": "forbidden"})
            self.patches.append((path, json.loads(request.content)))
            if path.startswith("/admin/users/"):
                return httpx.Response(200, json={"user": {"id": "u1", "roles": ["admin"]}})
            return httpx.Response(200, json={"ok": True})
        if path == "/admin/users":
            return httpx.Response(200, json={"users": [{"id": "u1", "roles": ["user"]}]})
        if path == "/admin/logs":
            return httpx.Response(
                200,
                json={"ok": True, "items": [{"id": "l1", "level": "error", "message": "boom"}]},
            )
        return httpx.Response(404)


@pytest.fixture
def backend() -> AdminBackend:
    return AdminBackend()


@pytest.fixture
def client(backend: AdminBackend):
    settings = Settings(auth_base_url=BASE_URL)
    admin_client = make_admin_client(backend)
    document_store = FakeDocumentStore(
        {
            "feature_access": [
                ("access", feature_doc(route="/access", status="beta", navOrder=1)),
                ("logs", feature_doc(route="/logs", showInSidebar=True)),
            ],
            "access_groups": [
                ("beta", {"label": "Beta", "userIds": ["u1"]}),
                ("staff", {"label": "Staff", "isSystem": True}),
            ],
        }
    )
    access_store = AccessControlStore(DocumentStoreAccessSource(document_store))
    checker = ServiceHealthChecker(client=httpx.AsyncClient(transport=httpx.MockTransport(backend)))
    app.state.container = ServiceContainer(
        settings=settings,
        admin_client=admin_client,
        access_store=access_store,
        access_view_model=AccessFeaturesViewModel(access_store, admin_client),
        users_store=AdminUsersStore(admin_client),
        logs_feed=AdminLogsFeed(admin_client),
        health_checker=checker,
        health_monitor=HealthMonitor(checker, build_core_services(Settings())),
    )
    test_client = TestClient(app)
    test_client.post("/access/refresh")
    yield test_client
    app.state.container = None


def test_overview_lists_and_filters_features(client: TestClient) -> None:
    response = client.get("/access")

    assert response.status_code == 200
    body = response.json()
    assert [feature["id"] for feature in body["features"]] == ["access", "logs"]
    assert body["features"][0]["status_label"] == "Beta"
    assert body["groups"][0]["user_count"] == 1
    assert body["error"] is None

    filtered = client.get("/access", params={"status": "public"}).json()
    assert [feature["id"] for feature in filtered["features"]] == ["logs"]


def test_feature_draft_save_sends_changed_fields(client: TestClient, backend: AdminBackend) -> None:
    assert client.post("/access/features/access/draft").json()["is_dirty"] is False

    edited = client.patch("/access/features/access/draft", json={"show_in_sidebar": True})
    assert edited.json()["is_dirty"] is True
    assert edited.json()["state"] == "editing"

    saved = client.post("/access/features/access/draft/save")

    assert saved.status_code == 200
    assert saved.json()["show_in_sidebar"] is True
    assert backend.patches == [
        ("/admin/access-control/features/access", {"showInSidebar": True})
    ]


def test_failed_save_keeps_draft_in_error_state(client: TestClient, backend: AdminBackend) -> None:
    client.post("/access/features/access/draft")
    client.post("/access/features/access/draft/roles/moderator")
    backend.forbid_patches = True

    response = client.post("/access/features/access/draft/save")

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "UPSTREAM_ERROR"
    assert response.json()["error"]["message"] == "Request failed (403): forbidden"

    draft = client.post("/access/features/access/draft").json()
    assert draft["state"] == "error"
    assert draft["draft"]["allowed_roles"] == ["moderator"]


def test_unknown_feature_returns_not_found_payload(client: TestClient) -> None:
    response = client.post("/access/features/missing/draft")

    assert response.status_code == 404
    assert response.json() == {
        "error": {"code": "NOT_FOUND", "message": "Feature missing not found", "details": None}
    }


def test_draft_edit_rejects_unknown_fields(client: TestClient) -> None:
    client.post("/access/features/access/draft")

    response = client.patch("/access/features/access/draft", json={"route": "/elsewhere"})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_failed_visibility_toggle_reverts_and_reports(client: TestClient, backend: AdminBackend) -> None:
    backend.forbid_patches = True

    response = client.post("/access/features/logs/visibility/show_in_sidebar")

    assert response.status_code == 200
    assert response.json()["state"] == "pending_failed"
    overview = client.get("/access").json()
    logs = next(f for f in overview["features"] if f["id"] == "logs")
    assert logs["show_in_sidebar"] is True
    assert overview["banner_errors"] == ["Request failed (403): forbidden"]

    dismissed = client.delete("/access/features/logs/visibility/show_in_sidebar/error")
    assert dismissed.status_code == 204
    assert client.get("/access").json()["banner_errors"] == []
    assert client.get("/access/toggles").json()[0]["state"] == "confirmed"


def test_unsupported_visibility_field_is_rejected(client: TestClient) -> None:
    response = client.post("/access/features/logs/visibility/nav_order")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_system_group_label_is_locked(client: TestClient) -> None:
    client.post("/access/groups/staff/draft")

    response = client.patch("/access/groups/staff/draft", json={"label": "Renamed"})

    assert response.status_code == 400
    assert "System group" in response.json()["error"]["message"]


def test_group_member_toggle_and_save(client: TestClient, backend: AdminBackend) -> None:
    client.post("/access/groups/beta/draft")
    client.post("/access/groups/beta/draft/members/u2")

    saved = client.post("/access/groups/beta/draft/save")

    assert saved.json()["user_ids"] == ["u1", "u2"]
    assert backend.patches == [("/admin/access-control/groups/beta", {"userIds": ["u1", "u2"]})]


def test_users_refresh_and_role_update(client: TestClient, backend: AdminBackend) -> None:
    listing = client.post("/users/refresh").json()
    assert listing["users"][0]["role_labels"] == ["User"]

    updated = client.patch("/users/u1/roles", json={"roles": ["admin"]})

    assert updated.status_code == 200
    assert updated.json()["roles"] == ["admin"]
    assert backend.patches[-1] == ("/admin/users/u1/roles", {"roles": ["admin"]})
    assert client.get("/users").json()["summary"]["admins"] == 1


def test_logs_reload_and_filter(client: TestClient) -> None:
    reloaded = client.post("/logs/reload").json()
    assert [item["id"] for item in reloaded["items"]] == ["l1"]
    assert reloaded["has_more"] is False

    assert client.get("/logs", params={"level": "info"}).json()["items"] == []


def test_service_health_before_refresh_uses_catalog(client: TestClient) -> None:
    services = client.get("/services/health").json()

    statuses = {service["id"]: service["status"] for service in services}
    assert statuses == {
        "auth-api": "ok",
        "scan-import-api": "unknown",
        "firestore": "ok",
        "goatcounter": "ok",
    }


def test_missing_container_is_a_configuration_error() -> None:
    app.state.container = None

    response = TestClient(app).get("/access")

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "CONFIGURATION_ERROR"


def test_liveness_endpoint() -> None:
    assert TestClient(app).get("/health").json() == {"status": "ok"}
