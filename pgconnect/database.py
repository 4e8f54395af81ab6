"""Async database handle: engine, pooled sessions, ping/close/migrate/transactions."""

import itertools
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (  # Async SQLAlchemy engine/session.
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool

from pgconnect.config import Config, LogLevel, default_config
from pgconnect.errors import ConnectionError, MigrationError, QueryError
from pgconnect.migrate import sync_schema

logger = logging.getLogger(__name__)

# Connections older than this are recycled by the pool. Not configurable.
CONN_MAX_LIFETIME = 3600

R = TypeVar("R")

# Suffixes for each engine's `sqlalchemy.engine.Engine.<name>` logger.
_engine_ids = itertools.count(1)


class Database:
    """Wraps one pooled AsyncEngine.

    The same Database is meant to be shared by every Repository built on it;
    the caller owns it and closes it when the last repository is done.
    Inside ``with_transaction`` the callback receives a Database bound to a
    single transactional session instead.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        config: Config,
        session: Optional[AsyncSession] = None,
        root: Optional["Database"] = None,
    ):
        self.engine = engine
        self.config = config
        # Session factory shared by every scope opened on this handle.
        self.session_factory = async_sessionmaker(engine, expire_on_commit=False)
        self._session = session
        # Transactional views share the closed flag with the handle they came from.
        self._root = root or self
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._root._closed

    @property
    def in_transaction(self) -> bool:
        return self._session is not None

    def _ensure_open(self, operation: str) -> None:
        if self.closed:
            raise ConnectionError("database is closed", operation)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session; commit on clean exit, roll back on error.

        Inside a transaction the bound session is yielded as-is and the
        enclosing ``with_transaction`` decides whether to commit.
        """
        if self._session is not None:
            yield self._session
            return

        self._ensure_open("session")
        async with self.session_factory() as session:
            yield session
            await session.commit()

    async def ping(self) -> None:
        """Check that the database answers ``SELECT 1``."""
        self._ensure_open("ping")
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            raise ConnectionError(str(e), "ping") from e

    async def close(self) -> None:
        """Release every pooled connection. A closed Database stays closed."""
        self._ensure_open("close")
        try:
            await self.engine.dispose()
        except (SQLAlchemyError, OSError) as e:
            raise ConnectionError(str(e), "close") from e
        finally:
            self._root._closed = True
        logger.info(f"Database connection closed: {self.config.host}/{self.config.database}")

    async def auto_migrate(self, *models: Any) -> None:
        """Create missing tables, columns and indexes for ``models``.

        Additive only: nothing that already exists is dropped or altered.
        """
        self._ensure_open("auto_migrate")
        try:
            async with self.engine.begin() as conn:
                tables = await conn.run_sync(sync_schema, models)
        except MigrationError:
            raise
        except SQLAlchemyError as e:
            raise MigrationError(str(e), "auto_migrate") from e
        logger.debug(f"Schema synchronised for tables: {tables}")

    async def with_transaction(self, fn: Callable[["Database"], Awaitable[R]]) -> R:
        """Run ``fn(tx)`` in a transaction and return its result.

        Commits when ``fn`` returns, rolls back when it raises. The original
        exception always propagates. Calling this on a transactional handle
        opens a SAVEPOINT.
        """
        if self._session is not None:
            async with self._session.begin_nested():
                return await fn(self)

        self._ensure_open("with_transaction")
        async with self.session_factory() as session:
            tx = Database(self.engine, self.config, session=session, root=self._root)
            try:
                result = await fn(tx)
            except BaseException:
                try:
                    await session.rollback()
                except SQLAlchemyError:
                    logger.error("Rollback failed, re-raising the original error", exc_info=True)
                raise
            try:
                await session.commit()
            except SQLAlchemyError as e:
                raise QueryError(str(e), "commit") from e
            return result


async def connect(config: Optional[Config] = None) -> Database:
    """Open a pooled connection to the database described by ``config``.

    Raises ConnectionError if the engine can't be built or the database
    doesn't answer.
    """
    config = config or default_config()
    logging_name = f"pgconnect{next(_engine_ids)}"
    if config.log_level is not LogLevel.INFO:
        # Per-engine logger, so one connection's level never leaks into another's.
        logging.getLogger(f"sqlalchemy.engine.Engine.{logging_name}").setLevel(
            config.log_level.logging_level
        )
    engine = None
    try:
        engine = create_async_engine(
            config.url(),
            echo=config.log_level is LogLevel.INFO,  # echo logs SQL.
            logging_name=logging_name,
            poolclass=AsyncAdaptedQueuePool,
            pool_recycle=CONN_MAX_LIFETIME,
            connect_args=config.connect_args(),
            **config.pool_options(),
        )
        # Smoke test
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError, ValueError) as e:
        if engine is not None:
            await engine.dispose()
        raise ConnectionError(f"failed to connect to database: {e}", "connect") from e

    logger.info(f"Database connection established: {config.host}/{config.database}")
    return Database(engine, config)


__all__ = ["CONN_MAX_LIFETIME", "Database", "connect"]
