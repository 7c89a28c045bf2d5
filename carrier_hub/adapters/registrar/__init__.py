"""Carrier address-book registrars."""

from carrier_hub.adapters.registrar.base import AbstractAddressRegistrar, RegistrarConflict
from carrier_hub.adapters.registrar.glovo import GlovoAddressRegistrar

__all__ = [
    "AbstractAddressRegistrar",
    "GlovoAddressRegistrar",
    "RegistrarConflict",
]
