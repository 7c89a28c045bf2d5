"""Glovo address-book registrar."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from carrier_hub.adapters.registrar.base import AbstractAddressRegistrar, RegistrarConflict
from carrier_hub.core.errors import (
    CarrierUnavailableError,
    RegistrarRejected,
    RegistrarUnavailable,
)

if TYPE_CHECKING:
    from carrier_hub.services.carrier_client import RateLimitedCarrierClient

logger = logging.getLogger(__name__)


class GlovoAddressRegistrar(AbstractAddressRegistrar):
    """Registers addresses in Glovo's LaaS address book.

    Each registration obtains a client-credentials token and then posts the
    address to ``/v2/laas/addresses``.
    """

    def __init__(
        self,
        *,
        base_url: str,
        client_id: str | None,
        client_secret: str | None,
        timeout_seconds: float = 15.0,
        client: httpx.AsyncClient | RateLimitedCarrierClient | None = None,
    ) -> None:
        """Initialize the registrar.

        Args:
            base_url: Glovo API root, e.g. ``https://stageapi.glovoapp.com``.
            client_id: OAuth client id.
            client_secret: OAuth client secret.
            timeout_seconds: Per-request timeout when no client is supplied.
            client: Optional preconfigured client. The application passes a
                RateLimitedCarrierClient so registrations count against the
                glovo quota; tests pass a mock transport.
        """
        self._client_id = client_id
        self._client_secret = client_secret
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
        )

    async def _get_token(self) -> str:
        client_id: str | int | None = self._client_id
        # Glovo expects a numeric client id
        if client_id and client_id.isdigit():
            client_id = int(client_id)
        body: dict[str, Any] = {
            "grantType": "client_credentials",
            "clientId": client_id,
            "clientSecret": self._client_secret,
        }
        response = await self._client.post("/oauth/token", json=body)
        if response.status_code >= 400:
            raise _status_error("auth", response)

        data = _json_object(response)
        if data is None:
            logger.warning(
                "glovo.token_invalid",
                extra={"http_status": response.status_code},
            )
            raise RegistrarUnavailable(
                code="glovo_token_invalid",
                message="Glovo token endpoint returned a non-JSON body",
                details={"http_status": response.status_code},
            )
        token = data.get("accessToken")
        if not token:
            raise RegistrarUnavailable(
                code="glovo_token_missing",
                message="Glovo token endpoint returned no access token",
            )
        return token

    async def register(
        self,
        canonical_address: str,
        default_contact: str,
        *,
        coordinates: dict[str, float] | None = None,
    ) -> str:
        payload: dict[str, Any] = {
            "address": canonical_address,
            "addressDetails": "",
            "phoneNumber": default_contact,
        }
        if coordinates is not None:
            payload["coordinates"] = coordinates

        try:
            token = await self._get_token()
            response = await self._client.post(
                "/v2/laas/addresses",
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
            )
        except (httpx.TransportError, CarrierUnavailableError) as exc:
            logger.warning(
                "glovo.transport_error",
                extra={"error_type": type(exc).__name__},
            )
            raise RegistrarUnavailable(
                code="glovo_unavailable",
                message="Could not reach Glovo address book",
            ) from exc

        if response.status_code == 409:
            external_id = _extract_id(response)
            logger.info(
                "glovo.address_conflict",
                extra={"recovered": external_id is not None},
            )
            raise RegistrarConflict(external_id)

        if response.status_code >= 400:
            raise _status_error("register", response)

        external_id = _extract_id(response)
        if not external_id:
            raise RegistrarUnavailable(
                code="glovo_register_failed",
                message="Glovo address book response carried no id",
            )
        return external_id

    async def aclose(self) -> None:
        await self._client.aclose()


def _status_error(stage: str, response: httpx.Response) -> RegistrarUnavailable | RegistrarRejected:
    """Classify an error status: 5xx and 429 are transient, other 4xx are final."""
    status_code = response.status_code
    logger.error(
        f"glovo.{stage}_failed",
        extra={"http_status": status_code},
    )
    if status_code >= 500 or status_code == 429:
        return RegistrarUnavailable(
            code=f"glovo_{stage}_failed",
            message=f"Glovo {stage} request returned HTTP {status_code}",
            details={"http_status": status_code},
        )
    return RegistrarRejected(
        code=f"glovo_{stage}_rejected",
        message=f"Glovo rejected the {stage} request with HTTP {status_code}",
        details={"http_status": status_code},
    )


def _json_object(response: httpx.Response) -> dict[str, Any] | None:
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _extract_id(response: httpx.Response) -> str | None:
    data = _json_object(response)
    if data and data.get("id"):
        return str(data["id"])
    return None
