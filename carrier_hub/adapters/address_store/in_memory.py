"""In-memory address registration store.

Thread-safe and process-local. Useful for tests and single-instance
deployments without a database; data is lost on restart.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Collection

from carrier_hub.adapters.address_store.base import (
    AbstractAddressStore,
    AddressRegistration,
    DuplicateRegistrationError,
    StoreAggregate,
)


class InMemoryAddressStore(AbstractAddressStore):
    """Dict-backed store with the same uniqueness rule as the SQL table."""

    def __init__(self) -> None:
        self._rows: dict[str, AddressRegistration] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def get(self, address_hash: str) -> AddressRegistration | None:
        with self._lock:
            return self._rows.get(address_hash)

    def touch(self, address_hash: str, now: datetime) -> AddressRegistration | None:
        with self._lock:
            row = self._rows.get(address_hash)
            if row is None:
                return None
            row = replace(row, usage_count=row.usage_count + 1, last_used_at=now)
            self._rows[address_hash] = row
            return row

    def insert(self, record: AddressRegistration) -> None:
        with self._lock:
            if record.address_hash in self._rows:
                raise DuplicateRegistrationError(record.address_hash)
            self._rows[record.address_hash] = record

    def delete_older_than(
        self,
        cutoff: datetime,
        *,
        exclude: Collection[str] = (),
    ) -> int:
        with self._lock:
            stale = [
                key
                for key, row in self._rows.items()
                if row.last_used_at < cutoff and key not in exclude
            ]
            for key in stale:
                del self._rows[key]
            return len(stale)

    def aggregate(self, recent_since: datetime) -> StoreAggregate:
        with self._lock:
            rows = list(self._rows.values())
        return StoreAggregate(
            count=len(rows),
            total_usage=sum(row.usage_count for row in rows),
            recent_additions=sum(1 for row in rows if row.last_used_at >= recent_since),
        )
