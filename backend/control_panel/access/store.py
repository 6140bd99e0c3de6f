"""
Access Control Store - owns the in-memory snapshot of feature-access rules
and access groups for the current session.

Loads replace the snapshot atomically. Every load is tagged with a
generation number and only the newest generation may publish its result,
so an overlapping refresh never lets an older response overwrite a newer
one. Public operations never raise: load failures clear the snapshot and
are reported through ``error``.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from ..ports.access_source import AccessSnapshotSourcePort
from .normalizer import (
    normalize_access_group,
    normalize_feature_access,
    sort_features,
    sort_groups,
)
from .records import (
    FEATURE_DOCUMENT_FIELDS,
    GROUP_DOCUMENT_FIELDS,
    AccessGroupRecord,
    FeatureAccessRecord,
)

logger = logging.getLogger("control_panel.access.store")

LOAD_FAILED_MESSAGE = "Failed to load access control collections."

RecordT = TypeVar("RecordT", FeatureAccessRecord, AccessGroupRecord)


@dataclass(frozen=True)
class AccessSnapshot:
    features: tuple[FeatureAccessRecord, ...] = ()
    access_groups: tuple[AccessGroupRecord, ...] = ()


class AccessControlStore:
    def __init__(self, source: AccessSnapshotSourcePort) -> None:
        self._source = source
        self._snapshot = AccessSnapshot()
        self._generation = 0
        self._is_loading = False
        self._error: str | None = None

    @property
    def snapshot(self) -> AccessSnapshot:
        return self._snapshot

    @property
    def features(self) -> list[FeatureAccessRecord]:
        return list(self._snapshot.features)

    @property
    def access_groups(self) -> list[AccessGroupRecord]:
        return list(self._snapshot.access_groups)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> str | None:
        return self._error

    def get_feature(self, feature_id: str) -> FeatureAccessRecord | None:
        return next((f for f in self._snapshot.features if f.id == feature_id), None)

    def get_group(self, group_id: str) -> AccessGroupRecord | None:
        return next((g for g in self._snapshot.access_groups if g.id == group_id), None)

    async def load(self) -> None:
        self._generation += 1
        generation = self._generation
        self._is_loading = True
        self._error = None

        try:
            documents = await self._source.fetch_access_documents()
            features = sort_features(
                [normalize_feature_access(doc_id, raw) for doc_id, raw in documents.features]
            )
            groups = sort_groups(
                [normalize_access_group(doc_id, raw) for doc_id, raw in documents.groups]
            )
        except Exception as exc:
            if generation != self._generation:
                logger.debug("Discarding failure of superseded load generation=%s", generation)
                return
            message = str(exc).strip() or LOAD_FAILED_MESSAGE
            logger.warning("Access control load failed: %s", message)
            self._snapshot = AccessSnapshot()
            self._error = message
            self._is_loading = False
            return

        if generation != self._generation:
            logger.debug("Discarding stale access control load generation=%s", generation)
            return

        self._snapshot = AccessSnapshot(features=tuple(features), access_groups=tuple(groups))
        self._is_loading = False
        logger.info(
            "Loaded access control snapshot features=%d groups=%d",
            len(features),
            len(groups),
        )

    async def refresh(self) -> None:
        await self.load()

    def update_feature(
        self, feature_id: str, changes: Mapping[str, Any]
    ) -> FeatureAccessRecord | None:
        """Merge a partial update into one feature; returns the merged record.

        Keys are record attribute names. The merged document is normalized
        again so the record invariants still hold.
        """
        features, updated = _merge(
            self._snapshot.features,
            feature_id,
            changes,
            FEATURE_DOCUMENT_FIELDS,
            normalize_feature_access,
        )
        if updated is not None:
            self._snapshot = AccessSnapshot(
                features=features, access_groups=self._snapshot.access_groups
            )
        return updated

    def update_group(
        self, group_id: str, changes: Mapping[str, Any]
    ) -> AccessGroupRecord | None:
        groups, updated = _merge(
            self._snapshot.access_groups,
            group_id,
            changes,
            GROUP_DOCUMENT_FIELDS,
            normalize_access_group,
        )
        if updated is not None:
            self._snapshot = AccessSnapshot(
                features=self._snapshot.features, access_groups=groups
            )
        return updated


def _merge(
    records: tuple[RecordT, ...],
    record_id: str,
    changes: Mapping[str, Any],
    document_fields: Mapping[str, str],
    normalize: Callable[[str, Any], RecordT],
) -> tuple[tuple[RecordT, ...], RecordT | None]:
    index = next((i for i, record in enumerate(records) if record.id == record_id), None)
    if index is None:
        logger.debug("No record %s to update", record_id)
        return records, None

    document = records[index].to_document()
    for name, value in changes.items():
        field_name = document_fields.get(name)
        if field_name is None:
            logger.warning("Ignoring unknown field %s for %s", name, record_id)
            continue
        if value is None:
            document.pop(field_name, None)
        else:
            document[field_name] = list(value) if isinstance(value, tuple) else value

    merged = normalize(record_id, document)
    return records[:index] + (merged,) + records[index + 1:], merged
