"""
Target list and credential resolution.

[TargetListResolver][sqlpulse.services.common.resolvers.TargetListResolver]
turns the parameter store document into
[TargetDescriptor][sqlpulse.models.target.TargetDescriptor] objects;
[CredentialResolver][sqlpulse.services.common.resolvers.CredentialResolver]
turns one secret payload into a
[Credential][sqlpulse.models.credential.Credential].

Both documents are JSON validated with Pydantic. Validation messages for
secret payloads are reduced to field names and error types so that no part
of the payload can end up in an exception message.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError

from sqlpulse.core.exceptions import (
    ConfigFetchError,
    ConfigParseError,
    SecretFetchError,
    SecretParseError,
    StoreError,
)
from sqlpulse.models.constants import DEFAULT_PARAMETER_KEY, DEFAULT_TARGETS_FIELD
from sqlpulse.models.credential import Credential
from sqlpulse.models.target import TargetDescriptor


if TYPE_CHECKING:
    from sqlpulse.stores.base import ParameterStore, SecretStore


class _TargetEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    db_secret_id: str = Field(alias="dbSecretId", min_length=1)
    db_server: str = Field(alias="dbServer", min_length=1)
    database: str = Field(min_length=1)


class _CredentialPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    username: str = Field(min_length=1)
    password: SecretStr

    def to_credential(self) -> Credential:
        if not self.password.get_secret_value():
            raise ValueError("password must not be empty")
        return Credential(username=self.username, password=self.password)


def _describe(exc: ValidationError) -> str:
    """Summarize a validation error by location and type only."""
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['type']}"
        for err in exc.errors(include_input=False)
    )


class TargetListResolver:
    """Fetch and parse the list of database targets.

    Args:
        store: Parameter store holding the JSON document.
        key: Parameter store key.
        field: Name of the list field in the document.
    """

    def __init__(
        self,
        store: ParameterStore,
        key: str = DEFAULT_PARAMETER_KEY,
        field: str = DEFAULT_TARGETS_FIELD,
    ) -> None:
        self._store = store
        self._key = key
        self._field = field

    @property
    def key(self) -> str:
        return self._key

    async def resolve(self) -> list[TargetDescriptor]:
        """Return one descriptor per entry of the target list, in order.

        Raises:
            ConfigFetchError: The store is unreachable or the key is missing.
            ConfigParseError: The document is not JSON, the list field is
                missing or not a list, or an entry is malformed.
        """
        try:
            raw = await self._store.get_parameter(self._key)
        except StoreError as e:
            raise ConfigFetchError(f"fetch parameter {self._key!r} failed: {e}") from e

        return self.parse(raw)

    def parse(self, raw: str) -> list[TargetDescriptor]:
        """Parse a target list document. See ``resolve()`` for errors."""
        try:
            document: Any = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise ConfigParseError(f"parameter {self._key!r} is not valid JSON: {e}") from e

        if not isinstance(document, dict):
            raise ConfigParseError(f"parameter {self._key!r} must be a JSON object")
        if self._field not in document:
            raise ConfigParseError(f"parameter {self._key!r} has no {self._field!r} field")
        entries = document[self._field]
        if not isinstance(entries, list):
            raise ConfigParseError(f"{self._field!r} in {self._key!r} must be a list")

        targets: list[TargetDescriptor] = []
        for index, entry in enumerate(entries):
            try:
                parsed = _TargetEntry.model_validate(entry)
            except ValidationError as e:
                raise ConfigParseError(
                    f"{self._field}[{index}] in {self._key!r} is invalid: {_describe(e)}"
                ) from e
            targets.append(
                TargetDescriptor(
                    credential_ref=parsed.db_secret_id,
                    server_address=parsed.db_server,
                    database_name=parsed.database,
                )
            )
        return targets


class CredentialResolver:
    """Fetch and decode one credential per call.

    Results are never cached: secrets may rotate between invocations and
    every unit of work asks for its own copy.
    """

    def __init__(self, store: SecretStore) -> None:
        self._store = store

    async def resolve(self, ref: str) -> Credential:
        """Return the credential stored under ``ref``.

        Raises:
            SecretFetchError: The secret is missing, access is denied, or the
                store is unavailable.
            SecretParseError: The payload is not a JSON object with non-empty
                ``username`` and ``password`` strings.
        """
        try:
            raw = await self._store.get_secret(ref)
        except StoreError as e:
            raise SecretFetchError(f"fetch secret {ref!r} failed: {e}") from e

        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            # The decode error quotes the payload, so it is not chained
            raise SecretParseError(f"secret {ref!r} is not valid JSON") from None

        try:
            return _CredentialPayload.model_validate(payload).to_credential()
        except ValidationError as e:
            raise SecretParseError(f"secret {ref!r} is invalid: {_describe(e)}") from None
        except ValueError as e:
            raise SecretParseError(f"secret {ref!r} is invalid: {e}") from None
