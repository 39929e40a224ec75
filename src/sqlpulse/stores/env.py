"""Environment-variable store backends.

A key such as ``/example/SqlToCwDemo`` maps to the variable
``<prefix>EXAMPLE_SQLTOCWDEMO``: the key is upper-cased and every run of
characters outside ``[A-Z0-9]`` becomes a single underscore, with leading and
trailing underscores dropped. Secrets use the same mapping under their own
prefix, mirroring how database passwords are handed to containers.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping

from sqlpulse.core.exceptions import StoreKeyNotFoundError


_NON_ALNUM = re.compile(r"[^A-Z0-9]+")


def env_var_name(prefix: str, key: str) -> str:
    """Map a store key to the environment variable that holds it."""
    normalized = _NON_ALNUM.sub("_", key.upper()).strip("_")
    if not normalized:
        raise ValueError(f"key {key!r} has no usable characters")
    return f"{prefix}{normalized}"


class _EnvStore:
    def __init__(self, prefix: str, environ: Mapping[str, str] | None = None) -> None:
        self._prefix = prefix
        self._environ = environ if environ is not None else os.environ

    def _lookup(self, key: str, kind: str) -> str:
        name = env_var_name(self._prefix, key)
        value = self._environ.get(name)
        if value is None:
            raise StoreKeyNotFoundError(f"{kind} {key!r} not found (expected ${name})")
        return value


class EnvParameterStore(_EnvStore):
    """[ParameterStore][sqlpulse.stores.base.ParameterStore] reading environment variables."""

    def __init__(
        self, prefix: str = "SQLPULSE_PARAM_", environ: Mapping[str, str] | None = None
    ) -> None:
        super().__init__(prefix, environ)

    async def get_parameter(self, key: str) -> str:
        return self._lookup(key, "parameter")


class EnvSecretStore(_EnvStore):
    """[SecretStore][sqlpulse.stores.base.SecretStore] reading environment variables."""

    def __init__(
        self, prefix: str = "SQLPULSE_SECRET_", environ: Mapping[str, str] | None = None
    ) -> None:
        super().__init__(prefix, environ)

    async def get_secret(self, ref: str) -> str:
        return self._lookup(ref, "secret")
