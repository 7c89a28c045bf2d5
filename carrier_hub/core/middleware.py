"""HTTP middleware for request correlation and access logging.

Every request gets a correlation id (taken from the incoming header or freshly
generated) that is stored in contextvars for the duration of the request, so
quota and address-registry logs emitted while serving it carry the same id.
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from carrier_hub.core.config import settings
from carrier_hub.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)


async def request_id_middleware(request: Request, call_next) -> Response:
    """Propagate the request id and log one access line per request.

    Response headers gain the request id header and ``X-Request-Duration-ms``.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "route": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
