"""Application factory for the FastAPI app.

Centralizes app construction (shared state, middleware, handlers, routers) so
tests can build an app around their own quota and registry instances.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from carrier_hub.adapters.rate_limit.base import AbstractProviderQuota
from carrier_hub.api.routes import address_book_router, health_router, rate_limits_router
from carrier_hub.core.config import settings
from carrier_hub.core.dependencies import build_address_registry, build_provider_quota
from carrier_hub.core.exception_handlers import setup_exception_handlers
from carrier_hub.core.logging import configure_logging
from carrier_hub.core.middleware import request_id_middleware
from carrier_hub.core.openapi import apply_openapi_customizations
from carrier_hub.services.address_registry import AddressRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("carrier_hub.startup", extra={"environment": settings.app_env})
    yield
    await app.state.address_registry.aclose()
    logger.info("carrier_hub.shutdown")


def create_app(
    *,
    provider_quota: AbstractProviderQuota | None = None,
    address_registry: AddressRegistry | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        provider_quota: Quota registry to use; built from settings if omitted.
        address_registry: Address registry to use; built from settings if
            omitted (it shares the provider quota for its carrier calls).

    Returns:
        Configured FastAPI app.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    quota = provider_quota or build_provider_quota(settings)
    registry = address_registry or build_address_registry(quota, settings)

    app = FastAPI(
        title="Carrier Hub API",
        description=(
            "Coordination layer in front of shipment-carrier APIs: per-carrier "
            "outbound quotas with live introspection and runtime limits, and a "
            "global address-book cache that registers each address with a "
            "carrier once and reuses it for every tenant."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.provider_quota = quota
    app.state.address_registry = registry

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(rate_limits_router, prefix="/v1")
    app.include_router(address_book_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
