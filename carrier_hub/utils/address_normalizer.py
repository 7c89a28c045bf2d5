"""Address canonicalization and content hashing.

Two raw strings that differ only in surrounding whitespace, internal
whitespace runs or letter case canonicalize to the same text and therefore to
the same cache key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from hashlib import sha256

from carrier_hub.adapters.geocoding.base import AbstractGeocoder
from carrier_hub.core.errors import NormalizationFailed

_WHITESPACE_RE = re.compile(r"\s+")


def canonicalize_address(text: str) -> str:
    """Trim, collapse whitespace runs to one space, and lower-case.

    Args:
        text: Raw address text.

    Returns:
        str: Canonical address text (may be empty).
    """
    return _WHITESPACE_RE.sub(" ", (text or "").strip()).lower()


def hash_address(canonical_address: str) -> str:
    """SHA-256 hex digest of canonical address text."""
    return sha256(canonical_address.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class NormalizedAddress:
    """Canonical form of an address plus what the registrar may need."""

    canonical: str
    address_hash: str
    display: str
    latitude: float | None = None
    longitude: float | None = None

    @property
    def coordinates(self) -> dict[str, float] | None:
        if self.latitude is None or self.longitude is None:
            return None
        return {"latitude": self.latitude, "longitude": self.longitude}


class AddressNormalizer:
    """Turns tenant-supplied addresses into canonical, hashable text.

    When a geocoder is configured the geocoder's formatted address is what
    gets canonicalized, so differently-typed spellings of the same place share
    one registration.
    """

    def __init__(self, geocoder: AbstractGeocoder | None = None) -> None:
        self._geocoder = geocoder

    async def normalize(self, raw_address: str) -> NormalizedAddress:
        """Canonicalize ``raw_address`` and compute its hash.

        Raises:
            NormalizationFailed: If the address is empty or cannot be geocoded.
        """
        display = _WHITESPACE_RE.sub(" ", (raw_address or "").strip())
        if not display:
            raise NormalizationFailed(
                code="address_empty",
                message="Address must contain at least one non-whitespace character",
            )

        latitude = longitude = None
        if self._geocoder is not None:
            result = await self._geocoder.geocode(display)
            if result is None:
                raise NormalizationFailed(
                    code="address_not_geocodable",
                    message="Address could not be resolved by the geocoding service",
                )
            display = result.formatted_address
            latitude, longitude = result.latitude, result.longitude

        canonical = canonicalize_address(display)
        if not canonical:
            raise NormalizationFailed(
                code="address_empty",
                message="Address normalized to empty text",
            )

        return NormalizedAddress(
            canonical=canonical,
            address_hash=hash_address(canonical),
            display=display,
            latitude=latitude,
            longitude=longitude,
        )

    async def aclose(self) -> None:
        if self._geocoder is not None:
            await self._geocoder.aclose()
