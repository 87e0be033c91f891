"""Health check endpoint with key-value store connectivity."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.v1.auth import get_app_settings, get_store
from app.core.config import Settings
from app.schemas.health import HealthResponse
from app.services.kv_store import KeyValueStore

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(
    settings: Annotated[Settings, Depends(get_app_settings)],
    store: Annotated[KeyValueStore | None, Depends(get_store)],
) -> HealthResponse:
    """
    Return service health status and user storage connectivity.
    Used by load balancers and monitoring.
    """
    if store is None:
        store_status = "not_configured"
    else:
        store_status = "connected" if store.ping() else "disconnected"

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        store=store_status,
    )
