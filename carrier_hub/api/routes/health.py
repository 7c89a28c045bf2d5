from __future__ import annotations

from fastapi import APIRouter, Depends

from carrier_hub.adapters.rate_limit.base import AbstractProviderQuota
from carrier_hub.core.dependencies import get_provider_quota

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(
    quota: AbstractProviderQuota = Depends(get_provider_quota),
) -> dict:
    """Liveness check for load balancers and monitoring.

    Returns:
        dict: ``status`` plus the carriers the quota layer currently tracks.
    """

    return {"status": "ok", "providers": quota.providers()}
