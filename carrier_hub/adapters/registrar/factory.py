"""Factory for the carrier address-book registrar."""

import httpx

from carrier_hub.adapters.rate_limit.base import AbstractProviderQuota
from carrier_hub.adapters.registrar.base import AbstractAddressRegistrar
from carrier_hub.adapters.registrar.glovo import GlovoAddressRegistrar
from carrier_hub.core.config import GlovoSettings, settings
from carrier_hub.services.carrier_client import RateLimitedCarrierClient

GLOVO_PROVIDER_ID = "glovo"


def create_address_registrar(
    quota: AbstractProviderQuota,
    glovo_settings: GlovoSettings | None = None,
) -> AbstractAddressRegistrar:
    """Build the registrar used by the global address registry.

    Outbound calls go through a RateLimitedCarrierClient so address-book
    registrations share the glovo quota with every other glovo call.

    Args:
        quota: Process-wide provider quota.
        glovo_settings: Credentials; defaults to global settings.

    Returns:
        AbstractAddressRegistrar: Configured registrar instance.
    """
    cfg = glovo_settings or settings.glovo
    http_client = httpx.AsyncClient(base_url=cfg.base_url, timeout=cfg.timeout_seconds)
    return GlovoAddressRegistrar(
        base_url=cfg.base_url,
        client_id=cfg.client_id,
        client_secret=cfg.client_secret,
        client=RateLimitedCarrierClient(GLOVO_PROVIDER_ID, quota=quota, client=http_client),
    )
