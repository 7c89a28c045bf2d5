"""Geocoding adapters used to pre-normalize tenant addresses."""

from carrier_hub.adapters.geocoding.base import AbstractGeocoder, GeocodeResult
from carrier_hub.adapters.geocoding.google import GoogleGeocoder

__all__ = [
    "AbstractGeocoder",
    "GeocodeResult",
    "GoogleGeocoder",
]
