"""Outbound carrier HTTP client guarded by the provider quota.

Every call first asks the quota for an admission. A denied call is rejected
locally with QuotaExceededError and never reaches the network; backing off
and retrying is left to the caller, using the error's retry_after_ms.
"""

from __future__ import annotations

import logging
import math
from typing import Any

import httpx

from carrier_hub.adapters.rate_limit.base import AbstractProviderQuota
from carrier_hub.core.errors import CarrierUnavailableError, QuotaExceededError

logger = logging.getLogger(__name__)


class RateLimitedCarrierClient:
    """Thin wrapper over ``httpx.AsyncClient`` for one carrier."""

    def __init__(
        self,
        provider_id: str,
        *,
        quota: AbstractProviderQuota,
        client: httpx.AsyncClient,
    ) -> None:
        self.provider_id = provider_id.strip().lower()
        self._quota = quota
        self._client = client

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request to the carrier if its quota allows it.

        Args:
            method: HTTP method.
            url: Path relative to the client's base URL, or an absolute URL.
            **kwargs: Passed through to ``httpx.AsyncClient.request``.

        Returns:
            httpx.Response: The carrier's response, whatever its status.

        Raises:
            QuotaExceededError: The quota denied the call (no I/O performed).
            CarrierUnavailableError: The carrier could not be reached.
        """
        admission = self._quota.admit(self.provider_id)
        if not admission.allowed:
            raise QuotaExceededError(
                code="carrier_quota_exceeded",
                message=(
                    f"{self.provider_id} rate limit exceeded. Try again in "
                    f"{math.ceil(admission.retry_after_ms / 1000)} seconds."
                ),
                details={
                    "provider": self.provider_id,
                    "retry_after_ms": admission.retry_after_ms,
                },
            )

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            logger.warning(
                "carrier.transport_error",
                extra={
                    "provider": self.provider_id,
                    "method": method,
                    "error_type": type(exc).__name__,
                },
            )
            raise CarrierUnavailableError(
                code="carrier_unavailable",
                message=f"Could not reach {self.provider_id}",
                details={"provider": self.provider_id},
            ) from exc

        logger.info(
            "carrier.response",
            extra={
                "provider": self.provider_id,
                "method": method,
                "http_status": response.status_code,
            },
        )
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()
