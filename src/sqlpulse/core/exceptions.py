"""sqlpulse exception hierarchy.

Every failure a pipeline can produce has its own type so that callers can
tell a configuration problem from an unreachable server, and so that
per-target failures can be reported without inspecting message strings.

Exception hierarchy:

```text
SqlPulseError (base -- never raised directly)
├── ConfigurationError           -- invalid service configuration
│   ├── ConfigFetchError         -- parameter store unreachable, key missing
│   └── ConfigParseError         -- target list is not valid JSON / bad shape
├── SecretError
│   ├── SecretFetchError         -- secret missing, access denied, store down
│   └── SecretParseError         -- payload not JSON / missing fields
├── DatabaseError
│   ├── DatabaseConnectionError  -- connect failed or timed out
│   ├── SchemaEnsureError        -- ensure database/table exists failed
│   ├── QueryError               -- statement failed
│   └── EmptyResultError         -- no row to report
├── PublishError                 -- metric sink rejected the batch
├── InvocationError              -- a cycle finished with failures
└── StoreError                   -- raised by parameter/secret store backends
    ├── StoreKeyNotFoundError
    ├── StoreAccessDeniedError
    └── StoreUnavailableError
```

Store backends raise ``StoreError`` subclasses;
[TargetListResolver][sqlpulse.services.common.resolvers.TargetListResolver]
and [CredentialResolver][sqlpulse.services.common.resolvers.CredentialResolver]
translate them into ``ConfigFetchError`` and ``SecretFetchError``.

Note:
    Messages never include credential material. Errors raised while
    resolving secrets name the secret reference only.

See Also:
    [ConnectionOutcome][sqlpulse.models.outcome.ConnectionOutcome]: Carries
        one of these errors for a failed target.
    [BaseService][sqlpulse.core.base_service.BaseService]: Catches all
        [SqlPulseError][sqlpulse.core.exceptions.SqlPulseError] subclasses
        in the
        [run_forever()][sqlpulse.core.base_service.BaseService.run_forever]
        loop.
"""

from __future__ import annotations


class SqlPulseError(Exception):
    """Base exception for all sqlpulse errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(SqlPulseError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


class ConfigFetchError(ConfigurationError):
    """The target list document could not be fetched.

    Raised when the parameter store is unreachable or the key does not
    exist. Fatal to the whole invocation: there is nothing to fan out over.
    """


class ConfigParseError(ConfigurationError):
    """The target list document is not usable.

    Raised for invalid JSON, a missing or non-list ``dbConnections`` field,
    or an entry missing one of its required keys.
    """


# ---------------------------------------------------------------------------
# Secrets
# ---------------------------------------------------------------------------


class SecretError(SqlPulseError):
    """Base for credential resolution failures."""


class SecretFetchError(SecretError):
    """The secret could not be retrieved (missing, access denied, store down)."""


class SecretParseError(SecretError):
    """The secret payload is not JSON or lacks ``username``/``password``."""


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


class DatabaseError(SqlPulseError):
    """Base for all database-related errors."""


class DatabaseConnectionError(DatabaseError):
    """Connecting to a target server failed (refused, timed out, auth)."""


class SchemaEnsureError(DatabaseError):
    """Ensuring the target database or table exists failed."""


class QueryError(DatabaseError):
    """A statement against the target database failed."""


class EmptyResultError(DatabaseError):
    """The sampled table has no rows, so there is nothing to report."""


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------


class PublishError(SqlPulseError):
    """The metric sink rejected or failed to accept a batch.

    Does not invalidate the per-target outcomes that produced the batch.
    """


# ---------------------------------------------------------------------------
# Invocation
# ---------------------------------------------------------------------------


class InvocationError(SqlPulseError):
    """A cycle completed but at least one target or the publish step failed.

    Attributes:
        failed: Number of targets whose unit of work failed.
        total: Number of targets in the cycle.
    """

    def __init__(self, message: str, *, failed: int = 0, total: int = 0) -> None:
        super().__init__(message)
        self.failed = failed
        self.total = total


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class StoreError(SqlPulseError):
    """Base for parameter and secret store backend failures."""


class StoreKeyNotFoundError(StoreError):
    """The requested key or secret reference does not exist."""


class StoreAccessDeniedError(StoreError):
    """The store refused to return the requested value."""


class StoreUnavailableError(StoreError):
    """The store could not be reached or read."""
