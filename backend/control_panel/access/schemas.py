from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class FeatureAccessUpdate(BaseModel):
    """Sparse update for one feature; only explicitly set fields are sent."""

    status: str | None = None
    min_role: str | None = None
    allowed_roles: list[str] | None = None
    allowed_groups: list[str] | None = None
    show_in_sidebar: bool | None = None
    show_in_topbar: bool | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class AccessGroupUpdate(BaseModel):
    label: str | None = None
    description: str | None = None
    min_role: str | None = None
    allowed_roles: list[str] | None = None
    user_ids: list[str] | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class FeatureAccessRead(BaseModel):
    id: str
    route: str
    area: str
    title_key: str
    status: str
    status_label: str
    min_role: str
    allowed_roles: list[str] | None
    allowed_groups: list[str] | None
    allowed_user_ids: list[str] | None
    show_in_topbar: bool
    show_in_sidebar: bool
    nav_order: float | None
    is_experimental: bool
    created_at: datetime | None
    updated_at: datetime | None
    created_by: str | None
    updated_by: str | None
    updated_display: str


class AccessGroupRead(BaseModel):
    id: str
    label: str
    description: str | None
    user_ids: list[str] | None
    user_count: int
    min_role: str | None
    allowed_roles: list[str] | None
    is_system: bool
    created_at: datetime | None
    updated_at: datetime | None


class VisibilityToggleRead(BaseModel):
    feature_id: str
    field: Literal["show_in_sidebar", "show_in_topbar"]
    state: Literal["confirmed", "pending", "pending_failed"]
    error: str | None


class AccessOverviewRead(BaseModel):
    features: list[FeatureAccessRead]
    groups: list[AccessGroupRead]
    is_loading: bool
    error: str | None
    banner_errors: list[str]


class FeatureDraftEdit(BaseModel):
    status: str | None = None
    min_role: str | None = None
    show_in_sidebar: bool | None = None
    show_in_topbar: bool | None = None
    allowed_roles: list[str] | None = None
    allowed_groups: list[str] | None = None

    model_config = ConfigDict(extra="forbid")


class GroupDraftEdit(BaseModel):
    label: str | None = None
    description: str | None = None
    min_role: str | None = None
    allowed_roles: list[str] | None = None
    user_ids: list[str] | None = None

    model_config = ConfigDict(extra="forbid")


class FeatureDraftRead(BaseModel):
    feature_id: str
    state: Literal["idle", "editing", "saving", "error"]
    error: str | None
    is_dirty: bool
    draft: FeatureAccessRead


class GroupDraftRead(BaseModel):
    group_id: str
    state: Literal["idle", "editing", "saving", "error"]
    error: str | None
    is_dirty: bool
    draft: AccessGroupRead
