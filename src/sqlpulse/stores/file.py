"""File-system store backends.

Each key maps to a file below a root directory: the leading ``/`` of the key
is dropped, so ``/example/SqlToCwDemo`` reads ``<root>/example/SqlToCwDemo``.
If that file does not exist, the same path with a ``.json`` suffix is tried.
This fits mounted secret volumes (one file per secret) as well as a checked-in
target list.

Reads run in a worker thread to keep the event loop free.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from sqlpulse.core.exceptions import (
    StoreAccessDeniedError,
    StoreKeyNotFoundError,
    StoreUnavailableError,
)


class _FileStore:
    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def resolve_path(self, key: str) -> Path:
        """Map a key to a path under the root, rejecting escapes."""
        relative = key.lstrip("/")
        parts = Path(relative).parts
        if not relative or ".." in parts:
            raise StoreKeyNotFoundError(f"invalid key {key!r}")
        return self._root.joinpath(*parts)

    def _read(self, key: str, kind: str) -> str:
        if not self._root.is_dir():
            raise StoreUnavailableError(f"{kind} store root {self._root} is not a directory")
        path = self.resolve_path(key)
        candidates = [path, path.with_name(path.name + ".json")]
        for candidate in candidates:
            try:
                return candidate.read_text(encoding="utf-8")
            except FileNotFoundError:
                continue
            except PermissionError as e:
                raise StoreAccessDeniedError(f"{kind} {key!r}: permission denied") from e
            except (IsADirectoryError, UnicodeDecodeError) as e:
                raise StoreUnavailableError(f"{kind} {key!r}: {type(e).__name__}") from e
            except OSError as e:
                raise StoreUnavailableError(f"{kind} {key!r}: {e.strerror or e}") from e
        raise StoreKeyNotFoundError(f"{kind} {key!r} not found under {self._root}")


class FileParameterStore(_FileStore):
    """[ParameterStore][sqlpulse.stores.base.ParameterStore] reading files."""

    async def get_parameter(self, key: str) -> str:
        return await asyncio.to_thread(self._read, key, "parameter")


class FileSecretStore(_FileStore):
    """[SecretStore][sqlpulse.stores.base.SecretStore] reading files."""

    async def get_secret(self, ref: str) -> str:
        return await asyncio.to_thread(self._read, ref, "secret")
