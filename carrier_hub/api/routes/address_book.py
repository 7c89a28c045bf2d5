from fastapi import APIRouter, Depends, Query

from carrier_hub.core.auth import verify_api_key
from carrier_hub.core.config import settings
from carrier_hub.core.dependencies import get_address_registry
from carrier_hub.core.errors import NotFoundAppError
from carrier_hub.schemas.address_book import (
    AddressBookStats,
    CleanupResponse,
    LookupAddressResponse,
    ResolveAddressRequest,
    ResolveAddressResponse,
)
from carrier_hub.services.address_registry import AddressRegistry

router = APIRouter(
    prefix="/address-book",
    tags=["Address book"],
    dependencies=[Depends(verify_api_key)],
)


def _not_cached(**details: str) -> NotFoundAppError:
    return NotFoundAppError(
        code="address_not_cached",
        message="Address is not in the address book cache",
        details=details or None,
    )


@router.post("/resolve", response_model=ResolveAddressResponse)
async def resolve_address(
    body: ResolveAddressRequest,
    registry: AddressRegistry = Depends(get_address_registry),
) -> ResolveAddressResponse:
    """Return the carrier address-book id for an address, registering it once.

    Concurrent requests for the same new address share one registration.

    Raises:
        NormalizationFailed: 400 for an empty or ungeocodable address.
        RegistrationConflictUnresolved: 409 when the carrier holds the address
            under another account and returned no id.
        RegistrarRejected: 502 when the carrier refuses the request.
        RegistrarUnavailable: 503 on transient carrier failure.
        QuotaExceededError: 429 when the carrier quota is used up.
    """
    resolution = await registry.resolve(body.address)
    return ResolveAddressResponse(
        address_hash=resolution.address_hash,
        external_id=resolution.external_id,
        created=resolution.created,
    )


@router.get("/lookup", response_model=LookupAddressResponse)
async def lookup_address(
    address: str = Query(..., description="Free-text address to look up."),
    registry: AddressRegistry = Depends(get_address_registry),
) -> LookupAddressResponse:
    """Cached id for an address. Never registers and does not count as use."""
    external_id = await registry.lookup(address)
    if external_id is None:
        raise _not_cached()
    return LookupAddressResponse(external_id=external_id)


@router.get("/lookup/{address_hash}", response_model=LookupAddressResponse)
async def lookup_address_by_hash(
    address_hash: str,
    registry: AddressRegistry = Depends(get_address_registry),
) -> LookupAddressResponse:
    """Cached id for a previously returned ``address_hash``. No geocoding."""
    external_id = await registry.lookup_by_hash(address_hash)
    if external_id is None:
        raise _not_cached(address_hash=address_hash[:16])
    return LookupAddressResponse(external_id=external_id)


@router.get("/stats", response_model=AddressBookStats)
def get_stats(
    registry: AddressRegistry = Depends(get_address_registry),
) -> AddressBookStats:
    stats = registry.stats()
    return AddressBookStats(
        count=stats.count,
        total_usage=stats.total_usage,
        average_usage=stats.average_usage,
        recent_additions=stats.recent_additions,
    )


@router.post("/cleanup", response_model=CleanupResponse)
def cleanup(
    retention_days: int | None = Query(
        None,
        ge=0,
        description="Delete entries unused for this many days (default from settings).",
    ),
    registry: AddressRegistry = Depends(get_address_registry),
) -> CleanupResponse:
    days = settings.address_book.retention_days if retention_days is None else retention_days
    deleted = registry.cleanup(days)
    return CleanupResponse(retention_days=days, deleted=deleted)
