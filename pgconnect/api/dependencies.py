"""FastAPI wiring: lifespan, request dependencies and error handlers."""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional, Type, TypeVar

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from pgconnect.config import Config
from pgconnect.database import Database, connect
from pgconnect.errors import ConnectionError, DatabaseError, NotFoundError
from pgconnect.repositories.base import Repository
from pgconnect.schemas import Page

T = TypeVar("T")

MAX_PAGE_SIZE = 100


def lifespan(config: Optional[Config] = None, *models: Any):
    """Build a FastAPI lifespan that owns one Database for the app's lifetime.

    Usage:
        app = FastAPI(lifespan=lifespan(Config.from_env(), User, Order))
    """

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Startup: connect and create tables
        database = await connect(config)
        if models:
            await database.auto_migrate(*models)
        app.state.database = database
        try:
            yield
        finally:
            # Shutdown
            if not database.closed:
                await database.close()

    return _lifespan


def get_database(request: Request) -> Database:
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("No database attached to the app; use pgconnect.api.lifespan")
    return database


async def get_session(database: Database = Depends(get_database)) -> AsyncIterator[AsyncSession]:
    # Dependency that yields a DB session, committing once the request is done.
    async with database.session() as session:
        yield session


def repository_dependency(model: Type[T]) -> Callable[..., Repository]:
    """Return a dependency that builds a Repository for ``model`` per request."""

    def get_repository(database: Database = Depends(get_database)) -> Repository:
        return Repository(database, model)

    return get_repository


@dataclass(frozen=True)
class PageParams:
    page: int = 1
    page_size: int = 20


def page_params(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
) -> PageParams:
    return PageParams(page=page, page_size=page_size)


async def paginate(repository: Repository, params: PageParams, query: Any = None, *args: Any) -> Page:
    """Count the matches and fetch the requested page."""
    total = await repository.count(query, *args)
    items = await repository.paginate_where(params.page, params.page_size, query, *args)
    return Page.build(items, total, params.page, params.page_size)


def register_exception_handlers(app: FastAPI) -> None:
    """Translate pgconnect errors into JSON responses."""

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConnectionError)
    async def unavailable(request: Request, exc: ConnectionError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(DatabaseError)
    async def database_error(request: Request, exc: DatabaseError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": str(exc)})
