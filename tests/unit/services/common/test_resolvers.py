"""
Unit tests for services.common.resolvers module.

Tests:
- TargetListResolver: fetch, parse, ordering, every malformed document shape
- CredentialResolver: fetch errors, parse errors, no payload leakage, no caching
"""

import json

import pytest

from sqlpulse.core.exceptions import (
    ConfigFetchError,
    ConfigParseError,
    SecretFetchError,
    SecretParseError,
    StoreAccessDeniedError,
    StoreUnavailableError,
)
from sqlpulse.models import TargetDescriptor
from sqlpulse.services.common.resolvers import CredentialResolver, TargetListResolver
from tests.fixtures.fakes import (
    InMemoryParameterStore,
    InMemorySecretStore,
    credential_payload,
    target_document,
    target_entry,
)


KEY = "/example/SqlToCwDemo"


def _resolver(raw: str | None) -> TargetListResolver:
    store = InMemoryParameterStore({} if raw is None else {KEY: raw})
    return TargetListResolver(store, key=KEY, field="dbConnections")


# ============================================================================
# TargetListResolver
# ============================================================================


class TestTargetListResolver:
    """Resolving the target list."""

    async def test_single_entry(self):
        resolver = _resolver(target_document(target_entry("s1", "srvA", "db1")))
        assert await resolver.resolve() == [TargetDescriptor("s1", "srvA", "db1")]

    async def test_preserves_order(self):
        resolver = _resolver(
            target_document(
                target_entry("s1", "srvA", "db1"),
                target_entry("s2", "srvB", "db2"),
                target_entry("s3", "srvA", "db3"),
            )
        )
        targets = await resolver.resolve()
        assert [t.credential_ref for t in targets] == ["s1", "s2", "s3"]

    async def test_duplicates_kept(self):
        entry = target_entry("s1", "srvA", "db1")
        targets = await _resolver(target_document(entry, entry)).resolve()
        assert len(targets) == 2

    async def test_empty_list(self):
        assert await _resolver(target_document()).resolve() == []

    async def test_extra_fields_ignored(self):
        entry = {**target_entry("s1", "srvA", "db1"), "comment": "primary"}
        assert len(await _resolver(target_document(entry)).resolve()) == 1

    async def test_custom_field(self):
        store = InMemoryParameterStore({KEY: target_document(target_entry("s", "h", "d"), field="dbs")})
        resolver = TargetListResolver(store, key=KEY, field="dbs")
        assert len(await resolver.resolve()) == 1

    async def test_missing_key(self):
        with pytest.raises(ConfigFetchError):
            await _resolver(None).resolve()

    async def test_store_unavailable(self):
        store = InMemoryParameterStore()
        store.error = StoreUnavailableError("timeout")
        with pytest.raises(ConfigFetchError) as exc_info:
            await TargetListResolver(store, key=KEY).resolve()
        assert isinstance(exc_info.value.__cause__, StoreUnavailableError)

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[]",
            json.dumps({"other": []}),
            json.dumps({"dbConnections": {"a": 1}}),
            json.dumps({"dbConnections": ["string"]}),
            json.dumps({"dbConnections": [{"dbSecretId": "s", "dbServer": "h"}]}),
            json.dumps({"dbConnections": [{"dbSecretId": "", "dbServer": "h", "database": "d"}]}),
            json.dumps({"dbConnections": [{"dbSecretId": 1, "dbServer": "h", "database": "d"}]}),
        ],
    )
    async def test_malformed(self, raw):
        with pytest.raises(ConfigParseError):
            await _resolver(raw).resolve()

    def test_parse_names_bad_entry(self):
        raw = json.dumps({"dbConnections": [target_entry("s", "h", "d"), {"dbSecretId": "s"}]})
        with pytest.raises(ConfigParseError, match=r"dbConnections\[1\]"):
            _resolver(raw).parse(raw)

    def test_key_property(self):
        assert _resolver("{}").key == KEY


# ============================================================================
# CredentialResolver
# ============================================================================


class TestCredentialResolver:
    """Resolving one credential."""

    async def test_resolves(self):
        resolver = CredentialResolver(InMemorySecretStore({"s1": credential_payload("sa", "pw")}))
        credential = await resolver.resolve("s1")
        assert credential.username == "sa"
        assert credential.password.get_secret_value() == "pw"

    async def test_missing_secret(self):
        with pytest.raises(SecretFetchError, match="s1"):
            await CredentialResolver(InMemorySecretStore()).resolve("s1")

    async def test_access_denied(self):
        store = InMemorySecretStore({"s1": credential_payload()})
        store.errors["s1"] = StoreAccessDeniedError("denied")
        with pytest.raises(SecretFetchError):
            await CredentialResolver(store).resolve("s1")

    @pytest.mark.parametrize(
        "raw",
        [
            "hunter2-not-json",
            json.dumps(["hunter2"]),
            json.dumps({"username": "sa"}),
            json.dumps({"password": "hunter2"}),
            json.dumps({"username": "", "password": "hunter2"}),
            json.dumps({"username": "sa", "password": ""}),
            json.dumps({"username": "sa", "password": 12345}),
        ],
    )
    async def test_malformed_payload(self, raw):
        resolver = CredentialResolver(InMemorySecretStore({"s1": raw}))
        with pytest.raises(SecretParseError) as exc_info:
            await resolver.resolve("s1")
        assert "hunter2" not in str(exc_info.value)
        assert exc_info.value.__cause__ is None

    async def test_not_cached(self):
        store = InMemorySecretStore({"s1": credential_payload("sa", "old")})
        resolver = CredentialResolver(store)
        await resolver.resolve("s1")
        store.values["s1"] = credential_payload("sa", "new")

        credential = await resolver.resolve("s1")

        assert credential.password.get_secret_value() == "new"
        assert store.reads == ["s1", "s1"]
