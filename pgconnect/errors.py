"""Exceptions raised by pgconnect.

Every error wraps the SQLAlchemy or driver exception that caused it
(available as ``__cause__``). Nothing is retried; callers decide.
"""

from typing import Optional


class DatabaseError(Exception):
    """Base class for all pgconnect errors."""

    def __init__(self, message: str, operation: Optional[str] = None) -> None:
        self.message = message
        self.operation = operation
        super().__init__(message if operation is None else f"{operation}: {message}")


class ConnectionError(DatabaseError):
    """Opening, pinging or closing the database failed.

    Unrelated to the built-in ``ConnectionError`` (an ``OSError``); it does
    not catch socket errors and is not caught by handlers for them.
    """


class MigrationError(DatabaseError):
    """Schema changes could not be applied."""


class NotFoundError(DatabaseError):
    """A lookup matched zero rows."""


class QueryError(DatabaseError):
    """Any other failure reported by SQLAlchemy or the database."""
