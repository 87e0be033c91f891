"""Admin-only lookup of stored accounts."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.v1.auth import get_store, require_admin
from app.core.errors import NotFoundError, ServiceUnavailableError
from app.schemas.auth import CurrentUser, ErrorResponse, UserDetail
from app.services.identity import IdentityStore
from app.services.kv_store import KeyValueStore, StoreUnavailableError

router = APIRouter()


@router.get(
    "/{username}",
    response_model=UserDetail,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
def get_user(
    username: str,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    store: Annotated[KeyValueStore | None, Depends(get_store)],
) -> UserDetail:
    """Return a user's role and timestamps (admin only). Demonstrates RBAC."""
    if store is None:
        raise ServiceUnavailableError()
    try:
        record = IdentityStore(store).get(username)
    except StoreUnavailableError as e:
        raise ServiceUnavailableError("User storage is unavailable") from e
    if record is None:
        raise NotFoundError("User not found")
    return UserDetail(
        username=record.username,
        role=record.role,
        createdAt=record.created_at,
        lastLogin=record.last_login,
    )
