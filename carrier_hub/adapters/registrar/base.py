"""Carrier address-book registrar interface.

The address registry depends on this abstraction so each carrier's
address-book endpoint (or a fake in tests) can be plugged in.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class RegistrarConflict(Exception):
    """The carrier already knows the address under another account.

    Attributes:
        external_id: Identifier recovered from the conflict response, if any.
    """

    def __init__(self, external_id: str | None = None) -> None:
        super().__init__(
            "address already registered"
            + (f" as {external_id}" if external_id else " under another account")
        )
        self.external_id = external_id


class AbstractAddressRegistrar(ABC):
    """Interface for carrier address-book registration endpoints."""

    @abstractmethod
    async def register(
        self,
        canonical_address: str,
        default_contact: str,
        *,
        coordinates: dict[str, float] | None = None,
    ) -> str:
        """Register an address and return the carrier's identifier for it.

        Args:
            canonical_address: Canonical address text.
            default_contact: Contact phone attached to the registration.
            coordinates: Optional ``{"latitude", "longitude"}`` pair.

        Returns:
            str: External address-book identifier.

        Raises:
            RegistrarConflict: The address exists under different ownership.
            RegistrarUnavailable: Transient transport or server failure.
            RegistrarRejected: The carrier refused the request outright.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources. No-op by default."""
