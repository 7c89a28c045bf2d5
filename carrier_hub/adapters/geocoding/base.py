from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class GeocodeResult:
    """A geocoder's answer for one free-text address."""

    formatted_address: str
    latitude: float
    longitude: float
    postal_code: str | None = None


class AbstractGeocoder(ABC):
    """Interface for geocoding services used before address canonicalization."""

    @abstractmethod
    async def geocode(self, address: str) -> GeocodeResult | None:
        """Resolve a free-text address.

        Args:
            address: Address as typed by the tenant.

        Returns:
            GeocodeResult for the best match, or None when nothing matched.

        Raises:
            NormalizationFailed: If the geocoding service cannot be reached.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources. No-op by default."""
