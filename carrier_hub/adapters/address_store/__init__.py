"""Durable address registration stores."""

from carrier_hub.adapters.address_store.base import (
    AbstractAddressStore,
    AddressRegistration,
    DuplicateRegistrationError,
    StoreAggregate,
)
from carrier_hub.adapters.address_store.in_memory import InMemoryAddressStore
from carrier_hub.adapters.address_store.sql import SqlAddressStore

__all__ = [
    "AbstractAddressStore",
    "AddressRegistration",
    "DuplicateRegistrationError",
    "InMemoryAddressStore",
    "SqlAddressStore",
    "StoreAggregate",
]
