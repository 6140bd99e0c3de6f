import asyncio
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import httpx

from control_panel.access.sources import DocumentStoreAccessSource
from control_panel.access.store import AccessControlStore
from control_panel.clients._http import SessionRequester
from control_panel.clients.admin_api import AdminApiClient
from control_panel.ports.access_source import AccessDocuments

BASE_URL = "https://auth.example.test"


class FakeDocumentStore:
    def __init__(self, collections: Mapping[str, Sequence[tuple[str, Mapping[str, Any]]]] | None = None) -> None:
        self.collections = dict(collections or {})
        self.calls: list[str] = []
        self.error: Exception | None = None

    async def list_documents(self, collection: str) -> list[tuple[str, Mapping[str, Any]]]:
        self.calls.append(collection)
        if self.error is not None:
            raise self.error
        return list(self.collections.get(collection, []))


class ScriptedSource:
    """Each fetch takes the next scripted result and waits for its gate."""

    def __init__(self, script: list[tuple[asyncio.Event, AccessDocuments | Exception]]) -> None:
        self._script = list(script)
        self.fetches = 0

    async def fetch_access_documents(self) -> AccessDocuments:
        self.fetches += 1
        gate, result = self._script.pop(0)
        await gate.wait()
        if isinstance(result, Exception):
            raise result
        return result


class StubAdminClient:
    """Records PATCH calls; fields listed in ``gates`` wait, fields in ``failures`` raise."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.failures: dict[str, Exception] = {}
        self.responses: dict[str, Any] = {}

    async def _patch(self, kind: str, entity_id: str, payload: Any) -> Any:
        body = payload.model_dump(by_alias=True, exclude_unset=True)
        self.calls.append((kind, entity_id, body))
        for key in body:
            gate = self.gates.get(key)
            if gate is not None:
                await gate.wait()
        for key in body:
            if key in self.failures:
                raise self.failures[key]
        return self.responses.get(entity_id, {})

    async def update_feature_access(self, feature_id: str, payload: Any) -> Any:
        return await self._patch("feature", feature_id, payload)

    async def update_access_group(self, group_id: str, payload: Any) -> Any:
        return await self._patch("group", group_id, payload)


def feature_doc(**fields: Any) -> dict[str, Any]:
    document = {
        "route": "/dashboard",
        "area": "controlPanel",
        "titleKey": "nav.dashboard",
        "status": "public",
        "minRole": "user",
        "showInSidebar": False,
        "showInTopbar": False,
    }
    document.update(fields)
    return document


def access_documents(
    features: Sequence[tuple[str, Mapping[str, Any]]] = (),
    groups: Sequence[tuple[str, Mapping[str, Any]]] = (),
) -> AccessDocuments:
    return AccessDocuments(features=list(features), groups=list(groups))


async def loaded_store(
    features: Sequence[tuple[str, Mapping[str, Any]]] = (),
    groups: Sequence[tuple[str, Mapping[str, Any]]] = (),
) -> AccessControlStore:
    document_store = FakeDocumentStore(
        {"feature_access": list(features), "access_groups": list(groups)}
    )
    store = AccessControlStore(DocumentStoreAccessSource(document_store))
    await store.load()
    return store


def make_admin_client(
    handler: Callable[[httpx.Request], Any], *, base_url: str | None = BASE_URL
) -> AdminApiClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AdminApiClient(SessionRequester(base_url=base_url, client=http_client))
