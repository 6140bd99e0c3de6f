"""
Edit and review workflow for the Access & Features screen.

Drafts move idle -> editing -> saving -> idle, or to error when the save
fails (the draft is kept so the user can retry or cancel). Visibility
toggles skip drafts: they are applied to the store optimistically and each
(feature id, field) pair carries its own state, so toggles on different
rows or fields never wait on each other.

The view-model never mutates records itself; every write goes through the
store's update operations.

Drafts and toggle states are kept per process and keyed by entity id only,
so every staff session sees the same draft for a given feature or group.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Final, Generic, TypeVar

from ..clients.admin_api import AdminApiClient
from ..errors import AppError, NotFoundError, ValidationError
from .formatting import ALL_STATUSES, filter_features, filter_groups
from .normalizer import (
    normalize_access_group,
    normalize_feature_access,
    normalize_role,
    normalize_role_array,
    normalize_status,
    normalize_string_array,
)
from .records import (
    FEATURE_DOCUMENT_FIELDS,
    GROUP_DOCUMENT_FIELDS,
    AccessGroupRecord,
    FeatureAccessRecord,
)
from .schemas import AccessGroupUpdate, FeatureAccessUpdate, FeatureDraftEdit, GroupDraftEdit
from .store import AccessControlStore

logger = logging.getLogger("control_panel.access.view_model")

RecordT = TypeVar("RecordT", FeatureAccessRecord, AccessGroupRecord)


class EditState(str, Enum):
    IDLE = "idle"
    EDITING = "editing"
    SAVING = "saving"
    ERROR = "error"


class ToggleState(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    PENDING_FAILED = "pending_failed"


VISIBILITY_FIELDS: Final[tuple[str, ...]] = ("show_in_sidebar", "show_in_topbar")

FEATURE_EDITABLE_FIELDS: Final[tuple[str, ...]] = (
    "status",
    "min_role",
    "show_in_sidebar",
    "show_in_topbar",
    "allowed_roles",
    "allowed_groups",
)
GROUP_EDITABLE_FIELDS: Final[tuple[str, ...]] = (
    "label",
    "description",
    "min_role",
    "allowed_roles",
    "user_ids",
)
# Compared by membership, not order
SET_FIELDS: Final[frozenset[str]] = frozenset({"allowed_roles", "allowed_groups", "user_ids"})
SYSTEM_LOCKED_FIELDS: Final[tuple[str, ...]] = ("label", "description")

SAVE_FAILED_MESSAGE: Final[str] = "Failed to save changes."
TOGGLE_FAILED_MESSAGE: Final[str] = "Failed to update visibility."


@dataclass
class Draft(Generic[RecordT]):
    original: RecordT
    current: RecordT
    state: EditState = EditState.EDITING
    error: str | None = None

    @property
    def is_dirty(self) -> bool:
        return bool(draft_changes(self))


def _changes(original: Any, current: Any, editable: Iterable[str]) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    for name in editable:
        before = getattr(original, name)
        after = getattr(current, name)
        if name in SET_FIELDS:
            if set(before or ()) != set(after or ()):
                changes[name] = list(after or ())
        elif before != after:
            changes[name] = after
    return changes


def feature_changes(original: FeatureAccessRecord, current: FeatureAccessRecord) -> dict[str, Any]:
    return _changes(original, current, FEATURE_EDITABLE_FIELDS)


def group_changes(original: AccessGroupRecord, current: AccessGroupRecord) -> dict[str, Any]:
    return _changes(original, current, GROUP_EDITABLE_FIELDS)


def draft_changes(draft: Draft[Any]) -> dict[str, Any]:
    if isinstance(draft.original, FeatureAccessRecord):
        return feature_changes(draft.original, draft.current)
    return group_changes(draft.original, draft.current)


def toggle_member(values: tuple[str, ...] | None, item: str) -> tuple[str, ...] | None:
    """Flip membership of ``item``; an emptied set collapses to None."""
    current = list(values or ())
    if item in current:
        current.remove(item)
    else:
        current.append(item)
    return tuple(current) or None


def _entity_changes(
    record: Any, entity: Mapping[str, Any], document_fields: Mapping[str, str]
) -> dict[str, Any]:
    return {
        name: getattr(record, name)
        for name, field_name in document_fields.items()
        if field_name in entity
    }


class AccessFeaturesViewModel:
    def __init__(self, store: AccessControlStore, client: AdminApiClient) -> None:
        self._store = store
        self._client = client
        self._feature_drafts: dict[str, Draft[FeatureAccessRecord]] = {}
        self._group_drafts: dict[str, Draft[AccessGroupRecord]] = {}
        self._toggle_states: dict[tuple[str, str], ToggleState] = {}
        self._toggle_errors: dict[tuple[str, str], str] = {}

    @property
    def store(self) -> AccessControlStore:
        return self._store

    async def refresh(self) -> None:
        await self._store.refresh()

    def filtered_features(
        self, search: str | None = None, status: str | None = ALL_STATUSES
    ) -> list[FeatureAccessRecord]:
        return filter_features(self._store.features, search, status)

    def filtered_groups(self, search: str | None = None) -> list[AccessGroupRecord]:
        return filter_groups(self._store.access_groups, search)

    def group_label(self, group_id: str) -> str:
        group = self._store.get_group(group_id)
        return group.label if group else group_id

    # -------- Feature drafts --------

    def feature_draft(self, feature_id: str) -> Draft[FeatureAccessRecord] | None:
        return self._feature_drafts.get(feature_id)

    def feature_edit_state(self, feature_id: str) -> EditState:
        draft = self._feature_drafts.get(feature_id)
        return draft.state if draft else EditState.IDLE

    def begin_feature_edit(self, feature_id: str) -> Draft[FeatureAccessRecord]:
        existing = self._feature_drafts.get(feature_id)
        if existing is not None:
            return existing
        feature = self._store.get_feature(feature_id)
        if feature is None:
            raise NotFoundError(f"Feature {feature_id} not found")
        draft = Draft(original=feature, current=feature)
        self._feature_drafts[feature_id] = draft
        return draft

    def edit_feature(
        self, feature_id: str, edit: FeatureDraftEdit | Mapping[str, Any]
    ) -> Draft[FeatureAccessRecord]:
        draft = self._editable(self._feature_drafts, feature_id, "feature")
        if not isinstance(edit, FeatureDraftEdit):
            edit = FeatureDraftEdit.model_validate(dict(edit))

        updates: dict[str, Any] = {}
        for name in edit.model_fields_set:
            value = getattr(edit, name)
            if name == "status":
                updates[name] = normalize_status(value)
            elif name == "min_role":
                updates[name] = normalize_role(value)
            elif name == "allowed_roles":
                updates[name] = normalize_role_array(value)
            elif name == "allowed_groups":
                updates[name] = normalize_string_array(value)
            elif value is not None:
                updates[name] = value
        draft.current = replace(draft.current, **updates)
        return draft

    def toggle_draft_role(self, feature_id: str, role: str) -> Draft[FeatureAccessRecord]:
        draft = self._editable(self._feature_drafts, feature_id, "feature")
        role = normalize_role(role, fallback="")
        if not role:
            raise ValidationError("Role is required.")
        draft.current = replace(
            draft.current, allowed_roles=toggle_member(draft.current.allowed_roles, role)
        )
        return draft

    def toggle_draft_group(self, feature_id: str, group_id: str) -> Draft[FeatureAccessRecord]:
        draft = self._editable(self._feature_drafts, feature_id, "feature")
        group_id = group_id.strip() if isinstance(group_id, str) else ""
        if not group_id:
            raise ValidationError("Group id is required.")
        draft.current = replace(
            draft.current, allowed_groups=toggle_member(draft.current.allowed_groups, group_id)
        )
        return draft

    def cancel_feature_edit(self, feature_id: str) -> None:
        self._feature_drafts.pop(feature_id, None)

    def can_save_feature(self, feature_id: str) -> bool:
        return _can_save(self._feature_drafts.get(feature_id))

    async def save_feature(self, feature_id: str) -> FeatureAccessRecord | None:
        draft = self._saveable(self._feature_drafts, feature_id, "feature")
        changes = feature_changes(draft.original, draft.current)
        draft.state = EditState.SAVING
        draft.error = None

        try:
            response = await self._client.update_feature_access(
                feature_id, FeatureAccessUpdate(**changes)
            )
        except BaseException as exc:
            self._fail_draft(self._feature_drafts, feature_id, draft, exc)
            raise

        entity = response.get("feature") if isinstance(response, Mapping) else None
        if isinstance(entity, Mapping):
            merged = normalize_feature_access(feature_id, entity)
            changes = _entity_changes(merged, entity, FEATURE_DOCUMENT_FIELDS)
        updated = self._store.update_feature(feature_id, changes)
        if self._feature_drafts.get(feature_id) is draft:
            del self._feature_drafts[feature_id]
        logger.info("Saved feature %s fields=%s", feature_id, sorted(changes))
        return updated

    # -------- Group drafts --------

    def group_draft(self, group_id: str) -> Draft[AccessGroupRecord] | None:
        return self._group_drafts.get(group_id)

    def group_edit_state(self, group_id: str) -> EditState:
        draft = self._group_drafts.get(group_id)
        return draft.state if draft else EditState.IDLE

    def begin_group_edit(self, group_id: str) -> Draft[AccessGroupRecord]:
        existing = self._group_drafts.get(group_id)
        if existing is not None:
            return existing
        group = self._store.get_group(group_id)
        if group is None:
            raise NotFoundError(f"Access group {group_id} not found")
        draft = Draft(original=group, current=group)
        self._group_drafts[group_id] = draft
        return draft

    def edit_group(
        self, group_id: str, edit: GroupDraftEdit | Mapping[str, Any]
    ) -> Draft[AccessGroupRecord]:
        draft = self._editable(self._group_drafts, group_id, "access group")
        if not isinstance(edit, GroupDraftEdit):
            edit = GroupDraftEdit.model_validate(dict(edit))

        updates: dict[str, Any] = {}
        for name in edit.model_fields_set:
            value = getattr(edit, name)
            if name == "label":
                label = value.strip() if isinstance(value, str) else ""
                if not label:
                    raise ValidationError("Group label is required.")
                updates[name] = label
            elif name == "description":
                updates[name] = (value.strip() or None) if isinstance(value, str) else None
            elif name == "min_role":
                updates[name] = normalize_role(value, fallback="") or None
            elif name == "allowed_roles":
                updates[name] = normalize_role_array(value)
            elif name == "user_ids":
                updates[name] = normalize_string_array(value)

        if draft.original.is_system:
            locked = [
                name
                for name in SYSTEM_LOCKED_FIELDS
                if name in updates and updates[name] != getattr(draft.original, name)
            ]
            if locked:
                raise ValidationError(
                    "System group label and description cannot be changed.",
                    details={"fields": locked},
                )
        draft.current = replace(draft.current, **updates)
        return draft

    def toggle_group_role(self, group_id: str, role: str) -> Draft[AccessGroupRecord]:
        draft = self._editable(self._group_drafts, group_id, "access group")
        role = normalize_role(role, fallback="")
        if not role:
            raise ValidationError("Role is required.")
        draft.current = replace(
            draft.current, allowed_roles=toggle_member(draft.current.allowed_roles, role)
        )
        return draft

    def toggle_group_member(self, group_id: str, user_id: str) -> Draft[AccessGroupRecord]:
        draft = self._editable(self._group_drafts, group_id, "access group")
        user_id = user_id.strip() if isinstance(user_id, str) else ""
        if not user_id:
            raise ValidationError("User id is required.")
        draft.current = replace(
            draft.current, user_ids=toggle_member(draft.current.user_ids, user_id)
        )
        return draft

    def cancel_group_edit(self, group_id: str) -> None:
        self._group_drafts.pop(group_id, None)

    def can_save_group(self, group_id: str) -> bool:
        return _can_save(self._group_drafts.get(group_id))

    async def save_group(self, group_id: str) -> AccessGroupRecord | None:
        draft = self._saveable(self._group_drafts, group_id, "access group")
        changes = group_changes(draft.original, draft.current)
        draft.state = EditState.SAVING
        draft.error = None

        try:
            response = await self._client.update_access_group(
                group_id, AccessGroupUpdate(**changes)
            )
        except BaseException as exc:
            self._fail_draft(self._group_drafts, group_id, draft, exc)
            raise

        entity = response.get("group") if isinstance(response, Mapping) else None
        if isinstance(entity, Mapping):
            merged = normalize_access_group(group_id, entity)
            changes = _entity_changes(merged, entity, GROUP_DOCUMENT_FIELDS)
        updated = self._store.update_group(group_id, changes)
        if self._group_drafts.get(group_id) is draft:
            del self._group_drafts[group_id]
        logger.info("Saved access group %s fields=%s", group_id, sorted(changes))
        return updated

    # -------- Visibility toggles --------

    def toggle_state(self, feature_id: str, field: str) -> ToggleState:
        return self._toggle_states.get((feature_id, field), ToggleState.CONFIRMED)

    def toggle_error(self, feature_id: str, field: str) -> str | None:
        return self._toggle_errors.get((feature_id, field))

    def toggle_keys(self) -> list[tuple[str, str]]:
        return list(self._toggle_states)

    @property
    def banner_errors(self) -> list[str]:
        return list(self._toggle_errors.values())

    def dismiss_toggle_error(self, feature_id: str, field: str) -> None:
        key = (feature_id, field)
        self._toggle_errors.pop(key, None)
        if self._toggle_states.get(key) is ToggleState.PENDING_FAILED:
            self._toggle_states[key] = ToggleState.CONFIRMED

    async def toggle_visibility(self, feature_id: str, field: str) -> ToggleState:
        if field not in VISIBILITY_FIELDS:
            raise ValidationError(f"Unsupported visibility field: {field}")
        key = (feature_id, field)
        if self._toggle_states.get(key) is ToggleState.PENDING:
            logger.debug("Toggle already pending feature=%s field=%s", feature_id, field)
            return ToggleState.PENDING

        feature = self._store.get_feature(feature_id)
        if feature is None:
            raise NotFoundError(f"Feature {feature_id} not found")

        previous = getattr(feature, field)
        target = not previous
        self._toggle_states[key] = ToggleState.PENDING
        self._toggle_errors.pop(key, None)
        self._store.update_feature(feature_id, {field: target})

        try:
            await self._client.update_feature_access(
                feature_id, FeatureAccessUpdate(**{field: target})
            )
        except BaseException as exc:
            # Cancellation and unexpected errors still revert and release the key
            message = _failure_message(exc, TOGGLE_FAILED_MESSAGE)
            current = self._store.get_feature(feature_id)
            if current is not None and getattr(current, field) == target:
                self._store.update_feature(feature_id, {field: previous})
            self._toggle_states[key] = ToggleState.PENDING_FAILED
            self._toggle_errors[key] = message
            logger.warning(
                "Visibility toggle failed feature=%s field=%s: %s",
                feature_id,
                field,
                message,
            )
            if isinstance(exc, AppError):
                return ToggleState.PENDING_FAILED
            raise

        self._toggle_states[key] = ToggleState.CONFIRMED
        return ToggleState.CONFIRMED

    # -------- Helpers --------

    @staticmethod
    def _editable(drafts: Mapping[str, Draft[Any]], entity_id: str, kind: str) -> Draft[Any]:
        draft = drafts.get(entity_id)
        if draft is None:
            raise NotFoundError(f"No open draft for {kind} {entity_id}")
        if draft.state is EditState.SAVING:
            raise ValidationError(f"Save in progress for {kind} {entity_id}")
        return draft

    def _saveable(self, drafts: Mapping[str, Draft[Any]], entity_id: str, kind: str) -> Draft[Any]:
        draft = self._editable(drafts, entity_id, kind)
        if not draft.is_dirty:
            raise ValidationError("No changes to save.")
        return draft

    @staticmethod
    def _fail_draft(
        drafts: Mapping[str, Draft[Any]], entity_id: str, draft: Draft[Any], exc: BaseException
    ) -> None:
        message = _failure_message(exc, SAVE_FAILED_MESSAGE)
        logger.warning("Save failed for %s: %s", entity_id, message)
        if drafts.get(entity_id) is draft:
            draft.state = EditState.ERROR
            draft.error = message


def _failure_message(exc: BaseException, fallback: str) -> str:
    if isinstance(exc, AppError):
        return exc.message or fallback
    return fallback


def _can_save(draft: Draft[Any] | None) -> bool:
    return draft is not None and draft.state is not EditState.SAVING and draft.is_dirty
