from __future__ import annotations

from fastapi import APIRouter, Depends

from app.config import get_settings
from app.domain.identity import Identity
from app.exceptions import NotFoundError
from app.observability.metrics import get_metrics
from app.services.auth_dependencies import get_current_identity


router = APIRouter(prefix="/api", tags=["metrics"])


@router.get("/metrics")
def metrics(identity: Identity = Depends(get_current_identity)) -> dict:
    _ = identity  # auth gate
    settings = get_settings()
    if not settings.enable_metrics_endpoint:
        raise NotFoundError(message="Not found")
    return get_metrics().snapshot()
