"""Pydantic schemas for the carrier quota admin endpoints."""

from __future__ import annotations

import math

from pydantic import BaseModel, Field

from carrier_hub.adapters.rate_limit.base import QuotaSnapshot


class ProviderQuotaStatus(BaseModel):
    """Live quota state of one carrier."""

    provider: str = Field(..., description="Lower-case carrier id.")
    max_requests: int = Field(..., description="Requests allowed per window.")
    window_ms: int = Field(..., description="Window length in milliseconds.")
    remaining_requests: int = Field(
        ..., description="Requests still admissible in the current window."
    )
    time_until_reset_ms: int = Field(
        ..., description="Milliseconds until the current window ends."
    )
    time_until_reset_seconds: int = Field(
        ..., description="time_until_reset_ms rounded up to whole seconds."
    )

    @classmethod
    def from_snapshot(cls, snapshot: QuotaSnapshot) -> "ProviderQuotaStatus":
        return cls(
            provider=snapshot.provider_id,
            max_requests=snapshot.max_requests,
            window_ms=snapshot.window_ms,
            remaining_requests=snapshot.remaining,
            time_until_reset_ms=snapshot.time_until_reset_ms,
            time_until_reset_seconds=math.ceil(snapshot.time_until_reset_ms / 1000),
        )


class ProviderQuotaUpdate(BaseModel):
    """New quota for a carrier. Applying it restarts the counting window.

    Bounds are enforced by the quota itself so out-of-range values surface
    as a ``quota_config_invalid`` error rather than a schema error.
    """

    max_requests: int = Field(..., description="Requests allowed per window (> 0).")
    window_ms: int = Field(..., description="Window length in milliseconds (> 0).")


class ProviderQuotaUpdated(BaseModel):
    message: str
    status: ProviderQuotaStatus
