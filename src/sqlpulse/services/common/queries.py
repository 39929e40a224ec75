"""
SQL used by the loader and the sampler.

Every function takes an open [Connection][sqlpulse.core.database.Connection]
and runs one logical operation. Values are bound as ``$n`` parameters;
identifiers go through
[quote_identifier()][sqlpulse.core.database.quote_identifier] because they
cannot be bound.

The seeded table has a fixed shape::

    id          integer identity primary key
    countItems  integer not null

Warning:
    ``ensure_database()`` and ``ensure_table()`` check for existence and then
    create. Two invocations racing against the same fresh target can both
    see "absent" and one ``CREATE`` will then fail; that invocation reports a
    ``SchemaEnsureError`` for the target and the next one succeeds. There is
    no locking to prevent this.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlpulse.core.database import quote_identifier


if TYPE_CHECKING:
    from sqlpulse.core.database import Connection


DATABASE_EXISTS_SQL = "SELECT EXISTS (SELECT 1 FROM pg_database WHERE datname = $1)"

TABLE_EXISTS_SQL = (
    "SELECT EXISTS (SELECT 1 FROM information_schema.tables "
    "WHERE table_schema = current_schema() AND table_name = $1)"
)


def create_database_sql(database: str) -> str:
    return f"CREATE DATABASE {quote_identifier(database)}"


def create_table_sql(table: str) -> str:
    return (
        f"CREATE TABLE {quote_identifier(table)} ("
        'id integer GENERATED ALWAYS AS IDENTITY PRIMARY KEY, "countItems" integer NOT NULL)'
    )


def insert_row_sql(table: str) -> str:
    return f'INSERT INTO {quote_identifier(table)} ("countItems") VALUES ($1)'


def latest_row_sql(table: str) -> str:
    return f'SELECT id, "countItems" FROM {quote_identifier(table)} ORDER BY id DESC LIMIT 1'


async def ensure_database(conn: Connection, database: str) -> bool:
    """Create ``database`` unless it already exists.

    Must run on a connection to another database (the admin database),
    outside a transaction.

    Returns:
        True if the database was created, False if it already existed.
    """
    statement = create_database_sql(database)
    if await conn.fetchval(DATABASE_EXISTS_SQL, database):
        return False
    await conn.execute(statement)
    return True


async def ensure_table(conn: Connection, table: str) -> bool:
    """Create the seeded table unless it already exists.

    Returns:
        True if the table was created, False if it already existed.
    """
    statement = create_table_sql(table)
    if await conn.fetchval(TABLE_EXISTS_SQL, table):
        return False
    await conn.execute(statement)
    return True


async def insert_seed_row(conn: Connection, table: str, count_items: int) -> None:
    """Insert one row with the given ``countItems`` value."""
    await conn.execute(insert_row_sql(table), count_items)


async def fetch_latest_count(conn: Connection, table: str) -> int | None:
    """Return ``countItems`` of the most recently inserted row, or None if empty."""
    row = await conn.fetchrow(latest_row_sql(table))
    if row is None:
        return None
    return int(row["countItems"])
