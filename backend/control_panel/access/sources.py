from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from ..clients.admin_api import AdminApiClient
from ..ports.access_source import AccessDocuments, RawDocument
from ..ports.document_store import DocumentStorePort
from .records import FEATURE_COLLECTION, GROUP_COLLECTION


class DocumentStoreAccessSource:
    """Reads both access collections from the document store concurrently."""

    def __init__(
        self,
        store: DocumentStorePort,
        *,
        feature_collection: str = FEATURE_COLLECTION,
        group_collection: str = GROUP_COLLECTION,
    ) -> None:
        self._store = store
        self._feature_collection = feature_collection
        self._group_collection = group_collection

    async def fetch_access_documents(self) -> AccessDocuments:
        features, groups = await asyncio.gather(
            self._store.list_documents(self._feature_collection),
            self._store.list_documents(self._group_collection),
        )
        return AccessDocuments(features=list(features), groups=list(groups))


class AdminApiAccessSource:
    """Reads the access configuration through ``GET /admin/access-control``."""

    def __init__(self, client: AdminApiClient) -> None:
        self._client = client

    async def fetch_access_documents(self) -> AccessDocuments:
        payload = await self._client.fetch_access_config()
        return AccessDocuments(
            features=_documents(payload.get("features")),
            groups=_documents(payload.get("groups")),
        )


def _documents(value: Any) -> list[RawDocument]:
    if not isinstance(value, list):
        return []
    return [
        (str(item["id"]), item)
        for item in value
        if isinstance(item, Mapping) and item.get("id") not in (None, "")
    ]
