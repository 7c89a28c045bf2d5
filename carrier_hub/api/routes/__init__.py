from __future__ import annotations

from carrier_hub.api.routes.address_book import router as address_book_router
from carrier_hub.api.routes.health import router as health_router
from carrier_hub.api.routes.rate_limits import router as rate_limits_router

__all__ = ["address_book_router", "health_router", "rate_limits_router"]
