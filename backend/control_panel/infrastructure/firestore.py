"""Firestore document store with an explicit lifecycle.

The store owns a *named* firebase-admin app instead of the process-wide
default app, so several stores (or tests) can coexist and each one is torn
down by the code that created it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from enum import Enum, auto
from typing import Any

import firebase_admin
from firebase_admin import credentials, firestore_async

logger = logging.getLogger(__name__)


class _FirestoreLifecycleState(Enum):
    """Lifecycle states for a FirestoreDocumentStore.

    State transitions:
    - UNINITIALIZED -> INITIALIZED (via connect)
    - INITIALIZED -> CLOSED (via disconnect)
    - CLOSED -> INITIALIZED (via connect - allows restart)

    Invariants:
    - connect() is idempotent while INITIALIZED
    - disconnect() is a no-op unless INITIALIZED
    - list_documents() raises RuntimeError unless INITIALIZED
    """
    UNINITIALIZED = auto()
    INITIALIZED = auto()
    CLOSED = auto()


def build_credential(
    service_account_json: str | None = None,
    service_account_path: str | None = None,
) -> credentials.Base:
    if service_account_json:
        return credentials.Certificate(json.loads(service_account_json))
    if service_account_path:
        return credentials.Certificate(service_account_path)
    return credentials.ApplicationDefault()


class FirestoreDocumentStore:
    """Reads whole collections from Firestore as (id, fields) pairs."""

    def __init__(
        self,
        *,
        project_id: str | None = None,
        service_account_json: str | None = None,
        service_account_path: str | None = None,
        app_name: str = "control-panel",
    ) -> None:
        self._project_id = project_id
        self._service_account_json = service_account_json
        self._service_account_path = service_account_path
        self._app_name = app_name
        self._app: firebase_admin.App | None = None
        self._client: Any = None
        self._state = _FirestoreLifecycleState.UNINITIALIZED
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._state == _FirestoreLifecycleState.INITIALIZED

    async def connect(self) -> None:
        async with self._lock:
            if self._state == _FirestoreLifecycleState.INITIALIZED:
                logger.debug("Firestore already initialized")
                return

            logger.info(
                "Initializing Firestore app %s (current state: %s)",
                self._app_name,
                self._state.name,
            )
            options = {"projectId": self._project_id} if self._project_id else None
            credential = build_credential(
                self._service_account_json, self._service_account_path
            )
            app = firebase_admin.initialize_app(
                credential, options=options, name=self._app_name
            )
            try:
                self._client = firestore_async.client(app=app)
            except Exception:
                # Unregister the named app so a later connect can reuse the name
                logger.exception("Firestore client creation failed for app %s", self._app_name)
                firebase_admin.delete_app(app)
                raise
            self._app = app
            self._state = _FirestoreLifecycleState.INITIALIZED

    async def disconnect(self) -> None:
        async with self._lock:
            if self._state != _FirestoreLifecycleState.INITIALIZED:
                logger.debug(
                    "Firestore not initialized (state: %s), nothing to close",
                    self._state.name,
                )
                return

            logger.info("Closing Firestore app %s", self._app_name)
            if self._app is not None:
                firebase_admin.delete_app(self._app)
            self._app = None
            self._client = None
            self._state = _FirestoreLifecycleState.CLOSED

    async def list_documents(
        self, collection: str
    ) -> Sequence[tuple[str, Mapping[str, Any]]]:
        if self._state != _FirestoreLifecycleState.INITIALIZED or self._client is None:
            raise RuntimeError("Firestore store not initialized. Call connect() first.")

        documents: list[tuple[str, Mapping[str, Any]]] = []
        async for snapshot in self._client.collection(collection).stream():
            documents.append((snapshot.id, snapshot.to_dict() or {}))
        logger.debug("Read %d documents from %s", len(documents), collection)
        return documents
