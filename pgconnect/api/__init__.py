from pgconnect.api.dependencies import (
    PageParams,
    get_database,
    get_session,
    lifespan,
    page_params,
    paginate,
    register_exception_handlers,
    repository_dependency,
)
from pgconnect.api.health import router as health_router

__all__ = [
    "PageParams",
    "get_database",
    "get_session",
    "health_router",
    "lifespan",
    "page_params",
    "paginate",
    "register_exception_handlers",
    "repository_dependency",
]
