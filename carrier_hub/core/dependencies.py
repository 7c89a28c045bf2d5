"""Composition root for the shared coordination layer.

One provider quota and one address registry are built per application and
kept on ``app.state``; routes reach them through the dependency functions
below, so tests can build isolated instances and inject them.
"""

from __future__ import annotations

import logging

from fastapi import Request

from carrier_hub.adapters.address_store.sql import SqlAddressStore
from carrier_hub.adapters.geocoding.google import GoogleGeocoder
from carrier_hub.adapters.rate_limit.base import AbstractProviderQuota
from carrier_hub.adapters.rate_limit.in_memory import InMemoryProviderQuota
from carrier_hub.adapters.registrar.factory import create_address_registrar
from carrier_hub.core.config import Settings, settings as global_settings
from carrier_hub.core.errors import ValidationAppError
from carrier_hub.services.address_registry import AddressRegistry
from carrier_hub.utils.address_normalizer import AddressNormalizer

logger = logging.getLogger(__name__)


def build_provider_quota(cfg: Settings | None = None) -> InMemoryProviderQuota:
    """Create the per-carrier quota registry from settings."""
    quota_cfg = (cfg or global_settings).quota
    return InMemoryProviderQuota(
        default_max_requests=quota_cfg.default_max_requests,
        default_window_ms=quota_cfg.default_window_ms,
        overrides={
            provider: (limit.max_requests, limit.window_ms)
            for provider, limit in quota_cfg.providers.items()
        },
    )


def build_address_normalizer(cfg: Settings | None = None) -> AddressNormalizer:
    """Create the normalizer, with geocoding when it is enabled."""
    geo_cfg = (cfg or global_settings).geocoding
    if not geo_cfg.enabled:
        return AddressNormalizer()
    if not geo_cfg.api_key:
        raise ValidationAppError(
            code="geocoding_missing_api_key",
            message="Geocoding is enabled but GEOCODING_API_KEY is not set",
        )
    return AddressNormalizer(
        GoogleGeocoder(
            geo_cfg.api_key,
            base_url=geo_cfg.base_url,
            timeout_seconds=geo_cfg.timeout_seconds,
        )
    )


def build_address_registry(
    quota: AbstractProviderQuota,
    cfg: Settings | None = None,
) -> AddressRegistry:
    """Create the global address registry backed by the SQL store."""
    cfg = cfg or global_settings
    book = cfg.address_book
    return AddressRegistry(
        store=SqlAddressStore.from_url(book.database_url),
        registrar=create_address_registrar(quota, cfg.glovo),
        default_contact=book.default_contact_phone,
        normalizer=build_address_normalizer(cfg),
        wait_timeout_seconds=book.wait_timeout_seconds,
    )


def get_provider_quota(request: Request) -> AbstractProviderQuota:
    """FastAPI dependency returning the application's provider quota."""
    return request.app.state.provider_quota


def get_address_registry(request: Request) -> AddressRegistry:
    """FastAPI dependency returning the application's address registry."""
    return request.app.state.address_registry
