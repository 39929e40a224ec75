"""
Single-connection database access built on asyncpg.

Each unit of work opens its own connection, runs a handful of statements and
closes it again. There is no pool: connections are never shared between
targets or reused across invocations.

The pipelines only depend on the small
[Connector][sqlpulse.core.database.Connector] /
[Connection][sqlpulse.core.database.Connection] protocols defined here, so
tests substitute an in-memory implementation and production code uses
[AsyncpgConnector][sqlpulse.core.database.AsyncpgConnector].

Identifiers coming from configuration (database and table names) cannot be
bound as statement parameters. They go through
[quote_identifier()][sqlpulse.core.database.quote_identifier], which rejects
anything that is not a plain name and double-quotes the rest; values are
always passed as ``$n`` parameters.

Examples:
    ```python
    connector = AsyncpgConnector()
    params = ConnectParams(
        host="db1.internal",
        database="postgres",
        user="loader",
        password=SecretStr("..."),
    )
    async with connect(connector, params) as conn:
        await conn.fetchval("SELECT 1")
    ```
"""

from __future__ import annotations

import re
import ssl as ssl_module
from collections.abc import AsyncIterator  # noqa: TC003
from contextlib import asynccontextmanager
from typing import Any, Protocol

import asyncpg
from pydantic import BaseModel, ConfigDict, Field, SecretStr

from .exceptions import DatabaseConnectionError


# PostgreSQL truncates identifiers at NAMEDATALEN - 1 bytes
MAX_IDENTIFIER_BYTES = 63

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_$\-]*$")


def quote_identifier(name: str) -> str:
    """Validate and double-quote an SQL identifier.

    Accepts names made of letters, digits, underscores, ``$`` and ``-``
    (the latter two are legal inside a quoted identifier) that do not
    start with a digit and fit in 63 bytes. Everything else is rejected
    rather than escaped, since a database name containing quotes or
    whitespace is almost certainly a configuration mistake.

    Args:
        name: Raw identifier from configuration.

    Returns:
        The identifier wrapped in double quotes, safe to interpolate.

    Raises:
        ValueError: If ``name`` is empty, too long, or contains characters
            outside the allowed set.
    """
    if not name:
        raise ValueError("identifier must not be empty")
    if len(name.encode("utf-8")) > MAX_IDENTIFIER_BYTES:
        raise ValueError(f"identifier longer than {MAX_IDENTIFIER_BYTES} bytes: {name[:20]}...")
    if not _IDENTIFIER_PATTERN.match(name):
        raise ValueError(f"invalid identifier: {name!r}")
    return '"' + name.replace('"', '""') + '"'


# ---------------------------------------------------------------------------
# Connection Parameters
# ---------------------------------------------------------------------------


class ConnectParams(BaseModel):
    """Everything needed to open one connection.

    Built per target per invocation from the target descriptor, the freshly
    resolved [Credential][sqlpulse.models.credential.Credential] and the
    service's [DatabaseConfig][sqlpulse.services.common.configs.DatabaseConfig].
    The password is a ``SecretStr`` and never appears in ``repr()``.
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(min_length=1)
    port: int = Field(default=5432, ge=1, le=65535)
    database: str = Field(min_length=1)
    user: str = Field(min_length=1)
    password: SecretStr
    ssl: bool = Field(default=True, description="Encrypt the connection")
    verify_certificate: bool = Field(
        default=False, description="Verify the server certificate when ssl is on"
    )
    connect_timeout: float = Field(default=15.0, gt=0.0)
    command_timeout: float | None = Field(default=30.0, gt=0.0)
    application_name: str = Field(default="sqlpulse")


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class Connection(Protocol):
    """Subset of ``asyncpg.Connection`` used by the pipelines."""

    async def execute(self, query: str, *args: Any) -> str: ...

    async def fetchrow(self, query: str, *args: Any) -> Any: ...

    async def fetchval(self, query: str, *args: Any) -> Any: ...

    async def close(self) -> None: ...


class Connector(Protocol):
    """Opens connections. Raises DatabaseConnectionError on failure."""

    async def connect(self, params: ConnectParams) -> Connection: ...


# ---------------------------------------------------------------------------
# asyncpg implementation
# ---------------------------------------------------------------------------


def _ssl_context(params: ConnectParams) -> ssl_module.SSLContext | bool:
    if not params.ssl:
        return False
    context = ssl_module.create_default_context()
    if not params.verify_certificate:
        context.check_hostname = False
        context.verify_mode = ssl_module.CERT_NONE
    return context


class AsyncpgConnector:
    """[Connector][sqlpulse.core.database.Connector] backed by ``asyncpg.connect``."""

    async def connect(self, params: ConnectParams) -> Connection:
        try:
            conn: Connection = await asyncpg.connect(
                host=params.host,
                port=params.port,
                database=params.database,
                user=params.user,
                password=params.password.get_secret_value(),
                ssl=_ssl_context(params),
                timeout=params.connect_timeout,
                command_timeout=params.command_timeout,
                server_settings={"application_name": params.application_name},
            )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError) as e:
            raise DatabaseConnectionError(
                f"connect to {params.host}:{params.port}/{params.database} failed: "
                f"{type(e).__name__}: {e}"
            ) from e
        return conn


@asynccontextmanager
async def connect(connector: Connector, params: ConnectParams) -> AsyncIterator[Connection]:
    """Open a connection and always close it on exit.

    Raises:
        DatabaseConnectionError: If the connector cannot connect.
    """
    conn = await connector.connect(params)
    try:
        yield conn
    finally:
        await conn.close()
