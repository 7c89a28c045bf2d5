"""Google Geocoding API adapter."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from carrier_hub.adapters.geocoding.base import AbstractGeocoder, GeocodeResult
from carrier_hub.core.errors import NormalizationFailed

logger = logging.getLogger(__name__)


class GoogleGeocoder(AbstractGeocoder):
    """Geocoder backed by the Google Maps Geocoding JSON endpoint.

    Uses a shared ``httpx.AsyncClient`` so connections are pooled across calls.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://maps.googleapis.com/maps/api/geocode/json",
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def geocode(self, address: str) -> GeocodeResult | None:
        try:
            response = await self._client.get(
                self._base_url,
                params={"address": address, "key": self._api_key},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning(
                "geocoding.failed",
                extra={"error_type": type(exc).__name__},
            )
            raise NormalizationFailed(
                code="geocoding_unavailable",
                message="Geocoding service request failed",
            ) from exc

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.warning("geocoding.invalid_body", extra={"http_status": response.status_code})
            raise NormalizationFailed(
                code="geocoding_unavailable",
                message="Geocoding service returned a non-JSON body",
            )

        results: list[dict[str, Any]] = data.get("results") or []
        if not results:
            return None

        best = results[0]
        location = best["geometry"]["location"]
        postal_code = next(
            (
                component.get("long_name")
                for component in best.get("address_components", [])
                if "postal_code" in component.get("types", [])
            ),
            None,
        )
        return GeocodeResult(
            formatted_address=best["formatted_address"],
            latitude=float(location["lat"]),
            longitude=float(location["lng"]),
            postal_code=postal_code,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
