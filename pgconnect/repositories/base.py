"""Generic async repository for SQLAlchemy models."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Generic, List, Optional, Type, TypeVar

from sqlalchemy import delete, func, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pgconnect.database import Database
from pgconnect.errors import ConnectionError, DatabaseError, NotFoundError, QueryError
from pgconnect.models import Base
from pgconnect.repositories.filters import build_where

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Base)  # Generic model type constrained to SQLAlchemy Base.

# Deleted rows are evicted by the primary keys the DELETE returns.
_NO_SYNC = {"synchronize_session": False}


class Repository(Generic[T]):
    """Uniform data access for one mapped model.

    Holds nothing but a reference to a shared Database, so repositories are
    cheap to create and throw away. Every method runs in its own session
    scope, or in the caller's transaction when built on a ``with_transaction``
    handle.
    """

    def __init__(self, db: Database, model: Type[T]):
        """Store the database handle and the model class this repository serves."""
        self.db = db
        # SQLAlchemy model class (not instance) for query construction.
        self.model = model
        self._primary_key = inspect(model).primary_key

    @asynccontextmanager
    async def _scope(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.db.session() as session:
                yield session
        except DatabaseError:
            raise
        except SQLAlchemyError as e:
            logger.debug(f"{self.model.__name__}.{operation} failed: {e}")
            if getattr(e, "connection_invalidated", False):
                raise ConnectionError(str(e), operation) from e
            raise QueryError(str(e), operation) from e

    def _select(self, query: Any = None, args: tuple = ()):
        stmt = select(self.model)
        where = build_where(self.model, query, args)
        if where is not None:
            stmt = stmt.where(where)
        return stmt

    async def create(self, model: T) -> T:
        """Insert ``model``; generated fields (primary key, defaults) are filled in place."""
        async with self._scope("create") as session:
            session.add(model)
            await session.flush()
            await session.refresh(model)
        return model

    async def find_by_id(self, id: Any) -> T:
        async with self._scope("find_by_id") as session:
            # `session.get` is optimized for primary-key lookup.
            result = await session.get(self.model, id)
        if result is None:
            raise NotFoundError(f"{self.model.__name__} with id={id!r} not found", "find_by_id")
        return result

    async def find_all(self) -> List[T]:
        async with self._scope("find_all") as session:
            result = await session.execute(select(self.model))
            return list(result.scalars().all())

    async def find_where(self, query: Any, *args: Any) -> List[T]:
        stmt = self._select(query, args)
        async with self._scope("find_where") as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def find_one(self, query: Any, *args: Any) -> T:
        """Return the first match by primary key, or raise NotFoundError."""
        stmt = self._select(query, args).order_by(*self._primary_key).limit(1)
        async with self._scope("find_one") as session:
            result = await session.execute(stmt)
            found = result.scalars().first()
        if found is None:
            raise NotFoundError(f"no {self.model.__name__} matches the filter", "find_one")
        return found

    async def update(self, model: T) -> T:
        """Save every field of ``model`` by primary key, inserting it if the key is new.

        Returns the persistent copy; ``model`` itself is left untouched.
        """
        async with self._scope("update") as session:
            merged = await session.merge(model)
            await session.flush()
            await session.refresh(merged)
        return merged

    async def delete(self, model: T) -> int:
        """Delete the row with ``model``'s primary key. Returns the number of rows removed."""
        identity = inspect(self.model).primary_key_from_instance(model)
        if any(value is None for value in identity):
            raise QueryError(f"{self.model.__name__} has no primary key set", "delete")
        stmt = delete(self.model).where(
            *[column == value for column, value in zip(self._primary_key, identity)]
        )
        async with self._scope("delete") as session:
            return await self._delete(session, stmt)

    async def delete_where(self, query: Any, *args: Any) -> int:
        """Delete every matching row in one statement. Refuses to run without a filter."""
        where = build_where(self.model, query, args)
        if where is None:
            raise QueryError("refusing to delete without a filter", "delete_where")
        stmt = delete(self.model).where(where)
        async with self._scope("delete_where") as session:
            return await self._delete(session, stmt)

    async def _delete(self, session: AsyncSession, stmt) -> int:
        # A transaction's session outlives this call, so the removed rows must
        # leave its identity map or a later `session.get` would still see them.
        result = await session.execute(
            stmt.returning(*self._primary_key), execution_options=_NO_SYNC
        )
        removed = result.all()
        mapper = inspect(self.model)
        for row in removed:
            key = mapper.identity_key_from_primary_key(tuple(row))
            instance = session.identity_map.get(key)
            if instance is not None:
                session.expunge(instance)
        return len(removed)

    async def count(self, query: Optional[Any] = None, *args: Any) -> int:
        stmt = select(func.count()).select_from(self.model)
        where = build_where(self.model, query, args)
        if where is not None:
            stmt = stmt.where(where)
        async with self._scope("count") as session:
            return await session.scalar(stmt) or 0

    async def paginate(self, page: int, page_size: int) -> List[T]:
        return await self.paginate_where(page, page_size, None)

    async def paginate_where(self, page: int, page_size: int, query: Any, *args: Any) -> List[T]:
        """Return one page (1-based) of matching rows in primary-key order.

        ``page`` and ``page_size`` are not checked: page 0 gives a negative
        offset, which the database will reject or clamp.
        """
        offset = (page - 1) * page_size
        stmt = (
            self._select(query, args)
            .order_by(*self._primary_key)
            .offset(offset)
            .limit(page_size)
        )
        async with self._scope("paginate") as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())
