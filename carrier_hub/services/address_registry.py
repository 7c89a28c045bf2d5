"""Global address registration cache shared by every tenant.

A physical address is registered with a carrier's address book at most once
and then reused. The flow is cache-aside with per-address singleflight:

- Hit: one keyed store call bumps usage and returns the stored id; no network.
- Miss: the first caller becomes the leader and calls the registrar; callers
  arriving for the same hash meanwhile await the leader's future instead of
  issuing their own registration.
- Conflict: a registrar conflict carrying an id is stored like a creation;
  one without an id is surfaced as RegistrationConflictUnresolved.

Unrelated addresses never wait on each other. The store's uniqueness rule on
the hash catches races with other processes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, TypeVar

from carrier_hub.adapters.address_store.base import (
    AbstractAddressStore,
    AddressRegistration,
    DuplicateRegistrationError,
)
from carrier_hub.adapters.registrar.base import AbstractAddressRegistrar, RegistrarConflict
from carrier_hub.core.errors import (
    AppError,
    RegistrarUnavailable,
    RegistrationConflictUnresolved,
    ValidationAppError,
)
from carrier_hub.utils.address_normalizer import AddressNormalizer, NormalizedAddress

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 90
RECENT_WINDOW = timedelta(days=1)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Resolution:
    """Result of resolving an address to a carrier address-book id."""

    address_hash: str
    external_id: str
    created: bool


@dataclass(frozen=True)
class RegistryStats:
    count: int
    total_usage: int
    average_usage: float
    recent_additions: int = 0


class AddressRegistry:
    """Deduplicating cache in front of a carrier address-book registrar."""

    def __init__(
        self,
        *,
        store: AbstractAddressStore,
        registrar: AbstractAddressRegistrar,
        default_contact: str,
        normalizer: AddressNormalizer | None = None,
        wait_timeout_seconds: float = 30.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the registry.

        Args:
            store: Durable hash -> registration mapping.
            registrar: Carrier address-book endpoint.
            default_contact: Contact phone sent with every registration.
            normalizer: Address canonicalizer (plain text rules by default).
            wait_timeout_seconds: Max wait on another caller's registration.
            clock: Returns the current UTC time.
        """
        self._store = store
        self._registrar = registrar
        self._default_contact = default_contact
        self._normalizer = normalizer or AddressNormalizer()
        self._wait_timeout = wait_timeout_seconds
        self._clock = clock
        self._inflight: dict[str, asyncio.Future[str]] = {}

    async def get_or_create(self, raw_address: str) -> str:
        """Return the carrier id for ``raw_address``, registering it if new.

        Raises:
            NormalizationFailed: The address is unusable.
            RegistrarUnavailable: Transient registrar failure (caller may retry).
            RegistrationConflictUnresolved: Owned elsewhere, no id recoverable.
        """
        resolution = await self.resolve(raw_address)
        return resolution.external_id

    async def resolve(self, raw_address: str) -> Resolution:
        """Like get_or_create, also reporting the hash and whether it was new."""
        address = await self._normalizer.normalize(raw_address)
        key = address.address_hash

        record = await self._call_store(self._store.touch, key, self._clock())
        if record is not None:
            logger.debug(
                "address_registry.hit",
                extra={"address_hash": key[:16], "usage_count": record.usage_count},
            )
            return Resolution(address_hash=key, external_id=record.external_id, created=False)

        # No await between the in-flight check and claiming the slot
        pending = self._inflight.get(key)
        if pending is not None:
            return await self._await_leader(key, pending)

        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            resolution = await self._lead(address)
        except asyncio.CancelledError:
            self._fail(
                future,
                RegistrarUnavailable(
                    code="registration_cancelled",
                    message="Address registration was cancelled before completing",
                    details={"address_hash": key[:16]},
                ),
            )
            raise
        except Exception as exc:
            self._fail(future, exc)
            raise
        else:
            future.set_result(resolution.external_id)
        finally:
            self._inflight.pop(key, None)

        return resolution

    async def lookup(self, raw_address: str) -> str | None:
        """Cached id for ``raw_address`` without registering or counting usage."""
        address = await self._normalizer.normalize(raw_address)
        return await self.lookup_by_hash(address.address_hash)

    async def lookup_by_hash(self, address_hash: str) -> str | None:
        """Cached id for a known address hash. Skips normalization and geocoding."""
        record = await self._call_store(self._store.get, address_hash.strip().lower())
        return record.external_id if record else None

    def cleanup(self, retention_days: int = DEFAULT_RETENTION_DAYS) -> int:
        """Delete registrations not used within ``retention_days``.

        Safe to repeat. Addresses with a registration in flight are skipped,
        and the store deletes by a single last_used_at comparison so a record
        touched after the cutoff survives. Blocking; call it from a worker
        thread when serving requests.

        Returns:
            Number of deleted registrations.
        """
        if retention_days < 0:
            raise ValidationAppError(
                code="retention_days_invalid",
                message="retention_days must be >= 0",
            )
        cutoff = self._clock() - timedelta(days=retention_days)
        in_flight = frozenset(self._inflight.copy())
        deleted = self._store.delete_older_than(cutoff, exclude=in_flight)
        logger.info(
            "address_registry.cleanup",
            extra={"retention_days": retention_days, "deleted": deleted},
        )
        return deleted

    def stats(self) -> RegistryStats:
        """Best-effort aggregate; not synchronized with concurrent writes.

        ``recent_additions`` counts registrations used within the last day.
        """
        aggregate = self._store.aggregate(self._clock() - RECENT_WINDOW)
        average = aggregate.total_usage / aggregate.count if aggregate.count else 0.0
        return RegistryStats(
            count=aggregate.count,
            total_usage=aggregate.total_usage,
            average_usage=average,
            recent_additions=aggregate.recent_additions,
        )

    async def aclose(self) -> None:
        """Close the registrar and normalizer network clients."""
        await self._registrar.aclose()
        await self._normalizer.aclose()

    @staticmethod
    async def _call_store(fn: Callable[..., T], *args: Any) -> T:
        # Store calls may block on a database round trip
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    async def _await_leader(self, key: str, pending: asyncio.Future[str]) -> Resolution:
        try:
            external_id = await asyncio.wait_for(asyncio.shield(pending), self._wait_timeout)
        except asyncio.TimeoutError as exc:
            raise RegistrarUnavailable(
                code="registration_wait_timeout",
                message="Timed out waiting for an in-flight address registration",
                details={"address_hash": key[:16]},
            ) from exc
        except AppError as exc:
            # Each waiter raises its own copy of the leader's error
            raise replace(exc, details=dict(exc.details) if exc.details else None) from exc

        # The leader already persisted the record; this call counts as reuse
        await self._call_store(self._store.touch, key, self._clock())
        logger.debug("address_registry.joined", extra={"address_hash": key[:16]})
        return Resolution(address_hash=key, external_id=external_id, created=False)

    async def _lead(self, address: NormalizedAddress) -> Resolution:
        key = address.address_hash
        # A previous leader may have stored the record while our first touch
        # was in flight
        record = await self._call_store(self._store.touch, key, self._clock())
        if record is not None:
            return Resolution(address_hash=key, external_id=record.external_id, created=False)

        external_id, created = await self._register(address)
        return Resolution(address_hash=key, external_id=external_id, created=created)

    async def _register(self, address: NormalizedAddress) -> tuple[str, bool]:
        key = address.address_hash
        try:
            external_id = await self._registrar.register(
                address.canonical,
                self._default_contact,
                coordinates=address.coordinates,
            )
        except RegistrarConflict as conflict:
            if not conflict.external_id:
                logger.warning(
                    "address_registry.conflict_unresolved",
                    extra={"address_hash": key[:16]},
                )
                raise RegistrationConflictUnresolved(
                    code="address_owned_elsewhere",
                    message="Carrier reports the address under another account and returned no id",
                    details={"address_hash": key[:16]},
                ) from conflict
            external_id = conflict.external_id
            logger.info(
                "address_registry.conflict_recovered",
                extra={"address_hash": key[:16]},
            )

        now = self._clock()
        record = AddressRegistration(
            address_hash=key,
            canonical_address=address.canonical,
            external_id=external_id,
            usage_count=1,
            created_at=now,
            last_used_at=now,
        )
        try:
            await self._call_store(self._store.insert, record)
        except DuplicateRegistrationError:
            # Another process stored this hash first; its id wins
            existing = await self._call_store(self._store.touch, key, now)
            if existing is not None:
                logger.info(
                    "address_registry.lost_race",
                    extra={"address_hash": key[:16]},
                )
                return existing.external_id, False
            await self._call_store(self._store.insert, record)

        logger.info(
            "address_registry.registered",
            extra={"address_hash": key[:16]},
        )
        return external_id, True

    @staticmethod
    def _fail(future: asyncio.Future[str], exc: BaseException) -> None:
        if future.done():
            return
        future.set_exception(exc)
        # Mark retrieved so a leader with no waiters does not log a warning
        future.exception()
