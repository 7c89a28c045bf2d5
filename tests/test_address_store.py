"""Contract tests run against both address store implementations."""

from datetime import datetime, timedelta, timezone

import pytest

from carrier_hub.adapters.address_store.base import (
    AbstractAddressStore,
    AddressRegistration,
    DuplicateRegistrationError,
)
from carrier_hub.adapters.address_store.in_memory import InMemoryAddressStore
from carrier_hub.adapters.address_store.sql import SqlAddressStore, build_engine

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _record(address_hash: str, *, external_id: str = "ext", last_used_at: datetime = T0) -> AddressRegistration:
    return AddressRegistration(
        address_hash=address_hash,
        canonical_address=f"address {address_hash}",
        external_id=external_id,
        usage_count=1,
        created_at=last_used_at,
        last_used_at=last_used_at,
    )


@pytest.fixture(params=["memory", "sql"])
def store(request) -> AbstractAddressStore:
    if request.param == "memory":
        return InMemoryAddressStore()
    return SqlAddressStore(build_engine("sqlite://"))


def test_get_missing_returns_none(store: AbstractAddressStore) -> None:
    assert store.get("nope") is None
    assert store.touch("nope", T0) is None


def test_insert_then_get_round_trips_utc(store: AbstractAddressStore) -> None:
    store.insert(_record("h1", external_id="glovo-1"))

    record = store.get("h1")
    assert record.external_id == "glovo-1"
    assert record.usage_count == 1
    assert record.created_at == T0
    assert record.last_used_at.tzinfo is not None


def test_insert_duplicate_rejected(store: AbstractAddressStore) -> None:
    store.insert(_record("h1", external_id="first"))

    with pytest.raises(DuplicateRegistrationError):
        store.insert(_record("h1", external_id="second"))

    assert store.get("h1").external_id == "first"


def test_touch_bumps_usage_and_last_used(store: AbstractAddressStore) -> None:
    store.insert(_record("h1"))
    later = T0 + timedelta(days=3)

    touched = store.touch("h1", later)
    store.touch("h1", later)

    assert touched.usage_count == 2
    assert touched.last_used_at == later
    record = store.get("h1")
    assert record.usage_count == 3
    assert record.created_at == T0


def test_delete_older_than_is_strict(store: AbstractAddressStore) -> None:
    store.insert(_record("old", last_used_at=T0 - timedelta(days=1)))
    store.insert(_record("edge", last_used_at=T0))
    store.insert(_record("new", last_used_at=T0 + timedelta(days=1)))

    assert store.delete_older_than(T0) == 1
    assert store.get("old") is None
    assert store.get("edge") is not None
    assert store.get("new") is not None


def test_delete_older_than_honors_exclusions(store: AbstractAddressStore) -> None:
    store.insert(_record("a", last_used_at=T0 - timedelta(days=5)))
    store.insert(_record("b", last_used_at=T0 - timedelta(days=5)))

    assert store.delete_older_than(T0, exclude={"a"}) == 1
    assert store.get("a") is not None
    assert store.delete_older_than(T0, exclude={"a"}) == 0


def test_aggregate(store: AbstractAddressStore) -> None:
    day_ago = T0 - timedelta(days=1)
    empty = store.aggregate(day_ago)
    assert (empty.count, empty.total_usage, empty.recent_additions) == (0, 0, 0)

    store.insert(_record("a"))
    store.insert(_record("b"))
    store.insert(_record("stale", last_used_at=T0 - timedelta(days=3)))
    store.touch("a", T0)

    aggregate = store.aggregate(day_ago)
    assert aggregate.count == 3
    assert aggregate.total_usage == 4
    assert aggregate.recent_additions == 2


def test_aggregate_recent_window_is_inclusive(store: AbstractAddressStore) -> None:
    store.insert(_record("edge", last_used_at=T0 - timedelta(days=1)))

    assert store.aggregate(T0 - timedelta(days=1)).recent_additions == 1
    assert store.aggregate(T0).recent_additions == 0


def test_sqlite_file_url_creates_parent_directory(tmp_path) -> None:
    db_path = tmp_path / "nested" / "book.db"

    store = SqlAddressStore.from_url(f"sqlite:///{db_path}")
    store.insert(_record("h1"))

    assert db_path.exists()
    assert SqlAddressStore.from_url(f"sqlite:///{db_path}").get("h1") is not None
