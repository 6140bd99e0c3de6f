from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ProviderRead(BaseModel):
    id: str
    display_name: str | None
    avatar_url: str | None


class AdminUserRead(BaseModel):
    id: str
    user_id: str
    display_name: str | None
    avatar_url: str | None
    primary_provider: str | None
    providers: dict[str, ProviderRead] | None
    profile: dict[str, Any] | None
    roles: list[str]
    role_labels: list[str]
    status: str
    created_at: datetime | None
    last_login_at: datetime | None
    notes: str | None
    is_system: bool
    is_updating: bool = False


class AdminUsersSummaryRead(BaseModel):
    admins: int
    moderators: int
    suspended: int
    banned: int
    system: int


class AdminUsersRead(BaseModel):
    users: list[AdminUserRead]
    summary: AdminUsersSummaryRead
    is_loading: bool
    error: str | None
    update_errors: dict[str, str]


class UserRolesUpdate(BaseModel):
    roles: list[str] = Field(default_factory=list)
