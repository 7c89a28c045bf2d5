"""Durable address registration store interface.

The registry only needs keyed access by address hash plus a retention sweep
ordered by last use; both the in-memory and the SQL store implement that.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Collection


@dataclass(frozen=True)
class AddressRegistration:
    """One address known to a carrier's address book.

    Attributes:
        address_hash: SHA-256 hex of the canonical address (unique).
        canonical_address: Text the hash was computed from.
        external_id: Identifier assigned by the carrier.
        usage_count: Number of resolutions served by this record (>= 1).
        created_at: When the record was first stored (UTC).
        last_used_at: Last time the record was served (UTC).
    """

    address_hash: str
    canonical_address: str
    external_id: str
    usage_count: int
    created_at: datetime
    last_used_at: datetime


@dataclass(frozen=True)
class StoreAggregate:
    count: int
    total_usage: int
    recent_additions: int = 0


class DuplicateRegistrationError(Exception):
    """Insert rejected because a record for the hash already exists."""

    def __init__(self, address_hash: str) -> None:
        super().__init__(f"registration already exists for {address_hash[:16]}")
        self.address_hash = address_hash


class AbstractAddressStore(ABC):
    """Interface for the durable hash -> registration mapping."""

    @abstractmethod
    def get(self, address_hash: str) -> AddressRegistration | None:
        """Return the record for ``address_hash`` without modifying it."""
        raise NotImplementedError

    @abstractmethod
    def touch(self, address_hash: str, now: datetime) -> AddressRegistration | None:
        """Atomically bump usage_count and last_used_at.

        Returns:
            The updated record, or None when no record exists.
        """
        raise NotImplementedError

    @abstractmethod
    def insert(self, record: AddressRegistration) -> None:
        """Persist a new record.

        Raises:
            DuplicateRegistrationError: A record for the hash already exists.
        """
        raise NotImplementedError

    @abstractmethod
    def delete_older_than(
        self,
        cutoff: datetime,
        *,
        exclude: Collection[str] = (),
    ) -> int:
        """Delete records last used strictly before ``cutoff``.

        Args:
            cutoff: Records with last_used_at < cutoff are removed.
            exclude: Hashes that must be kept regardless of age.

        Returns:
            Number of deleted records.
        """
        raise NotImplementedError

    @abstractmethod
    def aggregate(self, recent_since: datetime) -> StoreAggregate:
        """Row count and summed usage, plus how many records were used since ``recent_since``."""
        raise NotImplementedError
