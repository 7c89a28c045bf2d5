"""SQL-backed address registration store (SQLModel / SQLAlchemy).

The ``address_hash`` primary key is the uniqueness backstop when several
processes register the same address concurrently. ``last_used_at`` is
indexed for the retention sweep.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Collection

from sqlalchemy import case, delete, update
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import IntegrityError
from sqlmodel import Field, Session, SQLModel, col, create_engine, func, select
from sqlmodel.pool import StaticPool

from carrier_hub.adapters.address_store.base import (
    AbstractAddressStore,
    AddressRegistration,
    DuplicateRegistrationError,
    StoreAggregate,
)

logger = logging.getLogger(__name__)


class AddressRegistrationRow(SQLModel, table=True):
    """Persisted layout of one address registration."""

    __tablename__ = "address_registrations"

    address_hash: str = Field(primary_key=True, max_length=64)
    canonical_address: str
    external_id: str = Field(index=True)
    usage_count: int = Field(default=1)
    created_at: datetime
    last_used_at: datetime = Field(index=True)


def _to_db(value: datetime) -> datetime:
    # Stored as naive UTC so SQLite string comparison stays ordered
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _from_db(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _to_record(row: AddressRegistrationRow) -> AddressRegistration:
    return AddressRegistration(
        address_hash=row.address_hash,
        canonical_address=row.canonical_address,
        external_id=row.external_id,
        usage_count=row.usage_count,
        created_at=_from_db(row.created_at),
        last_used_at=_from_db(row.last_used_at),
    )


def build_engine(database_url: str) -> Engine:
    """Create an engine for ``database_url``.

    SQLite needs ``check_same_thread=False`` because the store is used from
    the event loop and worker threads; an in-memory SQLite URL is pinned to a
    single connection so every session sees the same database.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, echo=False, pool_pre_ping=True)

    connect_args = {"check_same_thread": False}
    if not url.database or url.database == ":memory:":
        return create_engine(
            database_url,
            echo=False,
            connect_args=connect_args,
            poolclass=StaticPool,
        )

    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, echo=False, connect_args=connect_args)


class SqlAddressStore(AbstractAddressStore):
    """Address store over any SQLAlchemy-supported database."""

    def __init__(self, engine: Engine, *, create_tables: bool = True) -> None:
        self._engine = engine
        if create_tables:
            SQLModel.metadata.create_all(engine, tables=[AddressRegistrationRow.__table__])

    @classmethod
    def from_url(cls, database_url: str) -> "SqlAddressStore":
        store = cls(build_engine(database_url))
        logger.info(
            "address_store.ready",
            extra={"backend": make_url(database_url).get_backend_name()},
        )
        return store

    def get(self, address_hash: str) -> AddressRegistration | None:
        with Session(self._engine) as session:
            row = session.get(AddressRegistrationRow, address_hash)
            return _to_record(row) if row else None

    def touch(self, address_hash: str, now: datetime) -> AddressRegistration | None:
        with Session(self._engine) as session:
            result = session.execute(
                update(AddressRegistrationRow)
                .where(col(AddressRegistrationRow.address_hash) == address_hash)
                .values(
                    usage_count=AddressRegistrationRow.usage_count + 1,
                    last_used_at=_to_db(now),
                )
            )
            if result.rowcount == 0:
                session.rollback()
                return None
            row = session.get(AddressRegistrationRow, address_hash)
            record = _to_record(row) if row else None
            session.commit()
            return record

    def insert(self, record: AddressRegistration) -> None:
        with Session(self._engine) as session:
            session.add(
                AddressRegistrationRow(
                    address_hash=record.address_hash,
                    canonical_address=record.canonical_address,
                    external_id=record.external_id,
                    usage_count=record.usage_count,
                    created_at=_to_db(record.created_at),
                    last_used_at=_to_db(record.last_used_at),
                )
            )
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateRegistrationError(record.address_hash) from exc

    def delete_older_than(
        self,
        cutoff: datetime,
        *,
        exclude: Collection[str] = (),
    ) -> int:
        statement = delete(AddressRegistrationRow).where(
            col(AddressRegistrationRow.last_used_at) < _to_db(cutoff)
        )
        if exclude:
            statement = statement.where(
                col(AddressRegistrationRow.address_hash).not_in(list(exclude))
            )
        with Session(self._engine) as session:
            result = session.execute(statement)
            session.commit()
            return result.rowcount or 0

    def aggregate(self, recent_since: datetime) -> StoreAggregate:
        recent = case(
            (col(AddressRegistrationRow.last_used_at) >= _to_db(recent_since), 1),
            else_=0,
        )
        with Session(self._engine) as session:
            count, total, recent_count = session.exec(
                select(
                    func.count(col(AddressRegistrationRow.address_hash)),
                    func.coalesce(func.sum(AddressRegistrationRow.usage_count), 0),
                    func.coalesce(func.sum(recent), 0),
                )
            ).one()
            return StoreAggregate(
                count=int(count),
                total_usage=int(total),
                recent_additions=int(recent_count),
            )
