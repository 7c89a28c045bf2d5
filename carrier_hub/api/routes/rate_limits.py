from fastapi import APIRouter, Depends

from carrier_hub.adapters.rate_limit.base import AbstractProviderQuota
from carrier_hub.core.auth import verify_api_key
from carrier_hub.core.dependencies import get_provider_quota
from carrier_hub.schemas.rate_limit import (
    ProviderQuotaStatus,
    ProviderQuotaUpdate,
    ProviderQuotaUpdated,
)

router = APIRouter(
    prefix="/rate-limits",
    tags=["Rate limits"],
    dependencies=[Depends(verify_api_key)],
)


@router.get("/status", response_model=dict[str, ProviderQuotaStatus])
async def get_all_providers_status(
    quota: AbstractProviderQuota = Depends(get_provider_quota),
) -> dict[str, ProviderQuotaStatus]:
    """Quota status of every configured or previously used carrier."""
    return {
        provider: ProviderQuotaStatus.from_snapshot(quota.snapshot(provider))
        for provider in quota.providers()
    }


@router.get("/{provider}/status", response_model=ProviderQuotaStatus)
async def get_provider_status(
    provider: str,
    quota: AbstractProviderQuota = Depends(get_provider_quota),
) -> ProviderQuotaStatus:
    """Remaining requests and time to reset for one carrier.

    Does not consume quota. An unknown carrier gets the default quota on
    first reference.
    """
    return ProviderQuotaStatus.from_snapshot(quota.snapshot(provider))


@router.patch("/{provider}/config", response_model=ProviderQuotaUpdated)
async def update_provider_config(
    provider: str,
    body: ProviderQuotaUpdate,
    quota: AbstractProviderQuota = Depends(get_provider_quota),
) -> ProviderQuotaUpdated:
    """Replace a carrier's quota. The counting window restarts immediately.

    Raises:
        ConfigurationInvalid: 400 when max_requests or window_ms is not positive.
    """
    quota.configure(provider, body.max_requests, body.window_ms)
    snapshot = quota.snapshot(provider)
    return ProviderQuotaUpdated(
        message=f"Rate limit configuration updated for {snapshot.provider_id}",
        status=ProviderQuotaStatus.from_snapshot(snapshot),
    )
