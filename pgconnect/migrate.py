"""Additive schema synchronisation for mapped models.

Creates missing tables, adds missing columns and indexes. Never drops or
alters anything that already exists.
"""

import logging
from typing import Any, Iterable, List

from sqlalchemy import Table, inspect
from sqlalchemy.engine import Connection
from sqlalchemy.schema import CreateColumn, sort_tables

from pgconnect.errors import MigrationError

logger = logging.getLogger(__name__)


def table_for(model: Any) -> Table:
    """Resolve a mapped class (or a Table) to its Table."""
    if isinstance(model, Table):
        return model
    table = getattr(model, "__table__", None)
    if not isinstance(table, Table):
        raise MigrationError(f"{model!r} is not a mapped model or Table", "auto_migrate")
    return table


def sync_schema(connection: Connection, models: Iterable[Any]) -> List[str]:
    """Bring the tables for ``models`` up to date. Returns the table names touched.

    Meant to be called through ``AsyncConnection.run_sync``.
    """
    tables = sort_tables([table_for(model) for model in models])
    for table in tables:
        _sync_table(connection, table)
    return [table.name for table in tables]


def _sync_table(connection: Connection, table: Table) -> None:
    inspector = inspect(connection)
    if not inspector.has_table(table.name, schema=table.schema):
        table.create(connection)
        logger.debug(f"Created table {table.name}")
        return

    existing_columns = {
        column["name"] for column in inspector.get_columns(table.name, schema=table.schema)
    }
    preparer = connection.dialect.identifier_preparer
    for column in table.columns:
        if column.name in existing_columns:
            continue
        ddl = CreateColumn(column).compile(dialect=connection.dialect)
        # Raw DDL: a literal default such as 'a :b' must not parse as a bind.
        connection.exec_driver_sql(
            f"ALTER TABLE {preparer.format_table(table)} ADD COLUMN {ddl}"
        )
        logger.debug(f"Added column {table.name}.{column.name}")

    existing_indexes = {
        index["name"] for index in inspector.get_indexes(table.name, schema=table.schema)
    }
    for index in table.indexes:
        # Unnamed indexes can't be matched against the database, skip them.
        if index.name is None or index.name in existing_indexes:
            continue
        index.create(connection)
        logger.debug(f"Created index {index.name} on {table.name}")
