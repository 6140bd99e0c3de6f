from dataclasses import asdict

from fastapi import APIRouter, Depends

from ..dependencies import get_users_store
from ..roles import role_label
from .normalizer import AdminUser
from .schemas import (
    AdminUserRead,
    AdminUsersRead,
    AdminUsersSummaryRead,
    ProviderRead,
    UserRolesUpdate,
)
from .store import AdminUsersStore

router = APIRouter(prefix="/users", tags=["users"])


def user_read(user: AdminUser, *, is_updating: bool = False) -> AdminUserRead:
    providers = (
        {
            key: ProviderRead(
                id=entry.id, display_name=entry.display_name, avatar_url=entry.avatar_url
            )
            for key, entry in user.providers.items()
        }
        if user.providers
        else None
    )
    return AdminUserRead(
        id=user.id,
        user_id=user.user_id,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
        primary_provider=user.primary_provider,
        providers=providers,
        profile=dict(user.profile) if user.profile is not None else None,
        roles=list(user.roles),
        role_labels=[role_label(role) for role in user.roles],
        status=user.status,
        created_at=user.created_at,
        last_login_at=user.last_login_at,
        notes=user.notes,
        is_system=user.is_system,
        is_updating=is_updating,
    )


def users_read(store: AdminUsersStore) -> AdminUsersRead:
    return AdminUsersRead(
        users=[user_read(user, is_updating=store.is_updating(user.id)) for user in store.users],
        summary=AdminUsersSummaryRead(**asdict(store.summary())),
        is_loading=store.is_loading,
        error=store.error,
        update_errors=store.update_errors,
    )


@router.get("", response_model=AdminUsersRead)
async def list_users(store: AdminUsersStore = Depends(get_users_store)) -> AdminUsersRead:
    return users_read(store)


@router.post("/refresh", response_model=AdminUsersRead)
async def refresh_users(store: AdminUsersStore = Depends(get_users_store)) -> AdminUsersRead:
    await store.refresh()
    return users_read(store)


@router.patch("/{user_id}/roles", response_model=AdminUserRead)
async def update_roles(
    user_id: str,
    payload: UserRolesUpdate,
    store: AdminUsersStore = Depends(get_users_store),
) -> AdminUserRead:
    return user_read(await store.update_roles(user_id, payload.roles))
