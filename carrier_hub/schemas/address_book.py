"""Pydantic schemas for the global address book endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ResolveAddressRequest(BaseModel):
    address: str = Field(
        ...,
        description="Free-text pickup or delivery address.",
        examples=["12 High St, Ikeja, Lagos"],
    )


class ResolveAddressResponse(BaseModel):
    """Carrier address-book id for an address."""

    address_hash: str = Field(..., description="SHA-256 of the canonical address.")
    external_id: str = Field(..., description="Identifier in the carrier address book.")
    created: bool = Field(
        ..., description="True when this call registered the address with the carrier."
    )


class LookupAddressResponse(BaseModel):
    external_id: str


class AddressBookStats(BaseModel):
    """Aggregate reuse of the global address cache."""

    count: int = Field(..., description="Number of cached registrations.")
    total_usage: int = Field(..., description="Sum of usage counts.")
    average_usage: float = Field(..., description="total_usage / count (0 when empty).")
    recent_additions: int = Field(0, description="Registrations used within the last day.")


class CleanupResponse(BaseModel):
    retention_days: int
    deleted: int
