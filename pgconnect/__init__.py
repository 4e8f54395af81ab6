"""Async PostgreSQL helpers on top of SQLAlchemy.

Provides connection configuration, a pooled Database handle with
ping/close/migrate/transaction helpers, a generic Repository, and FastAPI
wiring (see ``pgconnect.api``).
"""

from pgconnect.config import Config, LogLevel, default_config
from pgconnect.database import CONN_MAX_LIFETIME, Database, connect
from pgconnect.errors import (
    ConnectionError,
    DatabaseError,
    MigrationError,
    NotFoundError,
    QueryError,
)
from pgconnect.models import Base, TimestampMixin
from pgconnect.repositories import Repository
from pgconnect.schemas import Page

__all__ = [
    "Base",
    "CONN_MAX_LIFETIME",
    "Config",
    "ConnectionError",
    "Database",
    "DatabaseError",
    "LogLevel",
    "MigrationError",
    "NotFoundError",
    "Page",
    "QueryError",
    "Repository",
    "TimestampMixin",
    "connect",
    "default_config",
]
