from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_access_view_model
from ..errors import NotFoundError
from .formatting import ALL_STATUSES, format_timestamp, status_label
from .records import AccessGroupRecord, FeatureAccessRecord
from .schemas import (
    AccessGroupRead,
    AccessOverviewRead,
    FeatureAccessRead,
    FeatureDraftEdit,
    FeatureDraftRead,
    GroupDraftEdit,
    GroupDraftRead,
    VisibilityToggleRead,
)
from .view_model import AccessFeaturesViewModel, Draft

router = APIRouter(prefix="/access", tags=["access"])


def _list(values: tuple[str, ...] | None) -> list[str] | None:
    return list(values) if values else None


def feature_read(record: FeatureAccessRecord) -> FeatureAccessRead:
    return FeatureAccessRead(
        id=record.id,
        route=record.route,
        area=record.area,
        title_key=record.title_key,
        status=record.status,
        status_label=status_label(record.status),
        min_role=record.min_role,
        allowed_roles=_list(record.allowed_roles),
        allowed_groups=_list(record.allowed_groups),
        allowed_user_ids=_list(record.allowed_user_ids),
        show_in_topbar=record.show_in_topbar,
        show_in_sidebar=record.show_in_sidebar,
        nav_order=record.nav_order,
        is_experimental=record.is_experimental,
        created_at=record.created_at,
        updated_at=record.updated_at,
        created_by=record.created_by,
        updated_by=record.updated_by,
        updated_display=format_timestamp(record.updated_at),
    )


def group_read(record: AccessGroupRecord) -> AccessGroupRead:
    return AccessGroupRead(
        id=record.id,
        label=record.label,
        description=record.description,
        user_ids=_list(record.user_ids),
        user_count=len(record.user_ids or ()),
        min_role=record.min_role,
        allowed_roles=_list(record.allowed_roles),
        is_system=record.is_system,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def feature_draft_read(feature_id: str, draft: Draft[FeatureAccessRecord]) -> FeatureDraftRead:
    return FeatureDraftRead(
        feature_id=feature_id,
        state=draft.state.value,
        error=draft.error,
        is_dirty=draft.is_dirty,
        draft=feature_read(draft.current),
    )


def group_draft_read(group_id: str, draft: Draft[AccessGroupRecord]) -> GroupDraftRead:
    return GroupDraftRead(
        group_id=group_id,
        state=draft.state.value,
        error=draft.error,
        is_dirty=draft.is_dirty,
        draft=group_read(draft.current),
    )


def toggle_read(
    view_model: AccessFeaturesViewModel, feature_id: str, field: str
) -> VisibilityToggleRead:
    return VisibilityToggleRead(
        feature_id=feature_id,
        field=field,
        state=view_model.toggle_state(feature_id, field).value,
        error=view_model.toggle_error(feature_id, field),
    )


def overview_read(
    view_model: AccessFeaturesViewModel,
    *,
    search: str | None = None,
    status_filter: str = ALL_STATUSES,
    group_search: str | None = None,
) -> AccessOverviewRead:
    store = view_model.store
    return AccessOverviewRead(
        features=[feature_read(f) for f in view_model.filtered_features(search, status_filter)],
        groups=[group_read(g) for g in view_model.filtered_groups(group_search)],
        is_loading=store.is_loading,
        error=store.error,
        banner_errors=view_model.banner_errors,
    )


@router.get("", response_model=AccessOverviewRead)
async def get_overview(
    search: str | None = Query(default=None),
    status_filter: str = Query(default=ALL_STATUSES, alias="status"),
    group_search: str | None = Query(default=None),
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> AccessOverviewRead:
    return overview_read(
        view_model, search=search, status_filter=status_filter, group_search=group_search
    )


@router.post("/refresh", response_model=AccessOverviewRead)
async def refresh(
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> AccessOverviewRead:
    await view_model.refresh()
    return overview_read(view_model)


# -------- Feature drafts --------


@router.post("/features/{feature_id}/draft", response_model=FeatureDraftRead)
async def begin_feature_edit(
    feature_id: str,
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> FeatureDraftRead:
    return feature_draft_read(feature_id, view_model.begin_feature_edit(feature_id))


@router.patch("/features/{feature_id}/draft", response_model=FeatureDraftRead)
async def edit_feature(
    feature_id: str,
    payload: FeatureDraftEdit,
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> FeatureDraftRead:
    return feature_draft_read(feature_id, view_model.edit_feature(feature_id, payload))


@router.post("/features/{feature_id}/draft/roles/{role}", response_model=FeatureDraftRead)
async def toggle_feature_role(
    feature_id: str,
    role: str,
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> FeatureDraftRead:
    return feature_draft_read(feature_id, view_model.toggle_draft_role(feature_id, role))


@router.post("/features/{feature_id}/draft/groups/{group_id}", response_model=FeatureDraftRead)
async def toggle_feature_group(
    feature_id: str,
    group_id: str,
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> FeatureDraftRead:
    return feature_draft_read(feature_id, view_model.toggle_draft_group(feature_id, group_id))


@router.delete("/features/{feature_id}/draft", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_feature_edit(
    feature_id: str,
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> None:
    view_model.cancel_feature_edit(feature_id)


@router.post("/features/{feature_id}/draft/save", response_model=FeatureAccessRead)
async def save_feature(
    feature_id: str,
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> FeatureAccessRead:
    record = await view_model.save_feature(feature_id)
    if record is None:
        raise NotFoundError(f"Feature {feature_id} not found")
    return feature_read(record)


# -------- Visibility toggles --------


@router.get("/toggles", response_model=list[VisibilityToggleRead])
async def list_toggles(
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> list[VisibilityToggleRead]:
    return [
        toggle_read(view_model, feature_id, field)
        for feature_id, field in view_model.toggle_keys()
    ]


@router.post(
    "/features/{feature_id}/visibility/{field}", response_model=VisibilityToggleRead
)
async def toggle_visibility(
    feature_id: str,
    field: str,
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> VisibilityToggleRead:
    await view_model.toggle_visibility(feature_id, field)
    return toggle_read(view_model, feature_id, field)


@router.delete(
    "/features/{feature_id}/visibility/{field}/error",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def dismiss_toggle_error(
    feature_id: str,
    field: str,
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> None:
    view_model.dismiss_toggle_error(feature_id, field)


# -------- Group drafts --------


@router.post("/groups/{group_id}/draft", response_model=GroupDraftRead)
async def begin_group_edit(
    group_id: str,
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> GroupDraftRead:
    return group_draft_read(group_id, view_model.begin_group_edit(group_id))


@router.patch("/groups/{group_id}/draft", response_model=GroupDraftRead)
async def edit_group(
    group_id: str,
    payload: GroupDraftEdit,
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> GroupDraftRead:
    return group_draft_read(group_id, view_model.edit_group(group_id, payload))


@router.post("/groups/{group_id}/draft/roles/{role}", response_model=GroupDraftRead)
async def toggle_group_role(
    group_id: str,
    role: str,
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> GroupDraftRead:
    return group_draft_read(group_id, view_model.toggle_group_role(group_id, role))


@router.post("/groups/{group_id}/draft/members/{user_id}", response_model=GroupDraftRead)
async def toggle_group_member(
    group_id: str,
    user_id: str,
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> GroupDraftRead:
    return group_draft_read(group_id, view_model.toggle_group_member(group_id, user_id))


@router.delete("/groups/{group_id}/draft", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_group_edit(
    group_id: str,
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> None:
    view_model.cancel_group_edit(group_id)


@router.post("/groups/{group_id}/draft/save", response_model=AccessGroupRead)
async def save_group(
    group_id: str,
    view_model: AccessFeaturesViewModel = Depends(get_access_view_model),
) -> AccessGroupRead:
    record = await view_model.save_group(group_id)
    if record is None:
        raise NotFoundError(f"Access group {group_id} not found")
    return group_read(record)
