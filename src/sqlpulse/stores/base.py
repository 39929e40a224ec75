"""
Parameter and secret store boundaries.

The pipelines read two kinds of external values: one JSON document listing
the targets (parameter store) and one JSON credential payload per target
(secret store). Both are plain key/value lookups returning text, defined here
as protocols so that a backend can be swapped without touching the
resolvers.

Backends raise [StoreError][sqlpulse.core.exceptions.StoreError]
subclasses: ``StoreKeyNotFoundError`` for a missing key,
``StoreAccessDeniedError`` when the value exists but may not be read, and
``StoreUnavailableError`` when the store itself cannot be reached.

See Also:
    [EnvParameterStore][sqlpulse.stores.env.EnvParameterStore],
    [FileParameterStore][sqlpulse.stores.file.FileParameterStore]: Concrete
        backends.
    [build_parameter_store()][sqlpulse.stores.build_parameter_store]:
        Factory selecting a backend from
        [StoreConfig][sqlpulse.stores.base.StoreConfig].
"""

from __future__ import annotations

from typing import Literal, Protocol

from pydantic import BaseModel, Field


class ParameterStore(Protocol):
    """Returns the raw text stored under a configuration key."""

    async def get_parameter(self, key: str) -> str: ...


class SecretStore(Protocol):
    """Returns the raw secret payload stored under a reference."""

    async def get_secret(self, ref: str) -> str: ...


class StoreConfig(BaseModel):
    """Backend selection for a parameter or secret store.

    Attributes:
        backend: ``"env"`` reads environment variables, ``"file"`` reads
            files under ``root``.
        prefix: Environment variable prefix for the ``env`` backend.
        root: Directory holding one file per key for the ``file`` backend.
    """

    backend: Literal["env", "file"] = Field(default="env", description="Store backend")
    prefix: str = Field(default="SQLPULSE_", description="Env var prefix (env backend)")
    root: str = Field(default="config/store", description="Base directory (file backend)")
