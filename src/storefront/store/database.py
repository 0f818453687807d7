"""
Database-backed repository.

Stores every entity record as a JSON document in a single table keyed by
(collection, key). Selected instead of the in-memory fixtures when
``DATABASE_URL`` is set.

Provides:
- AsyncEngine / session maker configuration
- Declarative ``EntityRecord`` model
- ``SqlRepository`` implementing the repository interface
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import JSON, String, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..core.errors import ValidationError
from .base import Mutation, Record, matches

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class EntityRecord(Base):
    """One stored entity document."""

    __tablename__ = "entity_records"

    collection: Mapped[str] = mapped_column(String(64), primary_key=True)
    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    data: Mapped[dict] = mapped_column(JSON, nullable=False)


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create async engine for the given URL."""
    return create_async_engine(database_url, echo=echo)


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Initialize database (create tables)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    """Close database connections."""
    await engine.dispose()


class SqlRepository:
    """
    Repository for one collection of JSON documents.

    Filtering is applied in Python after loading the collection, which keeps
    the ``field__op`` semantics identical to the in-memory store.

    Usage:
        engine = create_engine("postgresql+asyncpg://...")
        await init_db(engine)
        users = SqlRepository("users", create_session_maker(engine))
        await users.seed(fixture_records)
    """

    def __init__(
        self,
        collection: str,
        session_maker: async_sessionmaker[AsyncSession],
        key_field: str = "id",
    ):
        self.collection = collection
        self.session_maker = session_maker
        self.key_field = key_field

    def _key_of(self, record: Mapping[str, Any]) -> str:
        key = record.get(self.key_field)
        if key is None:
            raise ValidationError([f"Record is missing key field '{self.key_field}'"])
        return str(key)

    async def seed(self, records: Iterable[Record]) -> int:
        """Insert records whose keys are not stored yet. Returns number inserted."""
        inserted = 0
        async with self.session_maker() as session:
            async with session.begin():
                for record in records:
                    key = self._key_of(record)
                    existing = await session.get(EntityRecord, (self.collection, key))
                    if existing is None:
                        session.add(EntityRecord(collection=self.collection, key=key, data=copy.deepcopy(record)))
                        inserted += 1
        if inserted:
            logger.info(f"Seeded {inserted} record(s) into '{self.collection}'")
        return inserted

    async def find(self, key: str) -> Optional[Record]:
        async with self.session_maker() as session:
            row = await session.get(EntityRecord, (self.collection, str(key)))
            return copy.deepcopy(row.data) if row is not None else None

    async def list(self, filters: Optional[Mapping[str, Any]] = None) -> list[Record]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(EntityRecord)
                .where(EntityRecord.collection == self.collection)
                .order_by(EntityRecord.key)
            )
            rows = result.scalars().all()
        return [copy.deepcopy(row.data) for row in rows if matches(row.data, filters)]

    async def mutate(self, key: str, change: Mutation) -> Optional[Record]:
        async with self.session_maker() as session:
            async with session.begin():
                stmt = (
                    select(EntityRecord)
                    .where(EntityRecord.collection == self.collection, EntityRecord.key == key)
                    .with_for_update()
                )
                row = (await session.execute(stmt)).scalar_one_or_none()
                current = copy.deepcopy(row.data) if row is not None else None
                updated = change(current)

                if updated is None:
                    if row is not None:
                        await session.delete(row)
                    return None

                if self._key_of(updated) != key:
                    raise ValidationError([f"Mutation must not change key field '{self.key_field}'"])

                if row is None:
                    session.add(EntityRecord(collection=self.collection, key=key, data=copy.deepcopy(updated)))
                else:
                    # Reassign so the JSON column is flagged dirty
                    row.data = copy.deepcopy(updated)

        return copy.deepcopy(updated)
