"""
Unit tests for services.common.service module.

Tests:
- classify_error() step to error type mapping
- CycleReport counters
- TargetService cycle: resolve, fan out, record, post step
- run() raises InvocationError only after every target finished
- Per-target logging never includes credentials
"""

import logging

import asyncpg
import pytest
from pydantic import SecretStr

from sqlpulse.core.database import AsyncpgConnector
from sqlpulse.core.exceptions import (
    ConfigFetchError,
    ConfigParseError,
    DatabaseConnectionError,
    InvocationError,
    PublishError,
    QueryError,
    SchemaEnsureError,
)
from sqlpulse.models import ConnectionOutcome, Credential, UnitStep
from sqlpulse.services.common.configs import TargetServiceConfig
from sqlpulse.services.common.service import CycleReport, TargetService, classify_error
from sqlpulse.stores import EnvParameterStore, EnvSecretStore
from tests.fixtures.fakes import InMemoryParameterStore, target_document, target_entry


class EchoService(TargetService[TargetServiceConfig, str]):
    """Returns the server name; fails for servers listed in ``failing``."""

    SERVICE_NAME = "echo"
    CONFIG_CLASS = TargetServiceConfig

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.failing: set[str] = set()
        self.executed: list[str] = []
        self.post_error: PublishError | None = None

    async def execute(self, target):
        self.executed.append(target.server_address)
        if target.server_address in self.failing:
            return ConnectionOutcome.failure(target, QueryError("boom"), UnitStep.QUERY)
        return ConnectionOutcome.success(target, target.server_address)

    async def _after_fan_out(self, report):
        report.post_error = self.post_error


def _store(*servers: str) -> InMemoryParameterStore:
    entries = [target_entry(f"sec-{s}", s, "demo") for s in servers]
    return InMemoryParameterStore({"/example/SqlToCwDemo": target_document(*entries)})


def _service(*servers: str) -> EchoService:
    return EchoService(parameter_store=_store(*servers), secret_store=None, connector=None)


# ============================================================================
# classify_error
# ============================================================================


class TestClassifyError:
    """Driver errors become typed errors by step."""

    @pytest.mark.parametrize(
        ("step", "expected"),
        [
            (UnitStep.CONNECT, DatabaseConnectionError),
            (UnitStep.ENSURE_DATABASE, SchemaEnsureError),
            (UnitStep.ENSURE_TABLE, SchemaEnsureError),
            (UnitStep.INSERT_ROW, QueryError),
            (UnitStep.QUERY, QueryError),
        ],
    )
    def test_mapping(self, step, expected):
        cause = asyncpg.PostgresError("db error")
        error = classify_error(step, cause)
        assert type(error) is expected
        assert error.__cause__ is cause
        assert str(step) in str(error)

    def test_typed_error_passes_through(self):
        error = SchemaEnsureError("x")
        assert classify_error(UnitStep.QUERY, error) is error


# ============================================================================
# CycleReport
# ============================================================================


class TestCycleReport:
    """CycleReport counters."""

    def test_counts(self, target):
        report = CycleReport(
            outcomes=[
                ConnectionOutcome.success(target, 1),
                ConnectionOutcome.failure(target, QueryError("x"), UnitStep.QUERY),
            ]
        )
        assert report.total == 2
        assert report.failed == 1
        assert report.succeeded == 1
        assert report.ok is False

    def test_post_error_not_ok(self, target):
        report = CycleReport(outcomes=[ConnectionOutcome.success(target, 1)])
        assert report.ok is True
        report.post_error = PublishError("x")
        assert report.ok is False

    def test_empty_is_ok(self):
        assert CycleReport(outcomes=[]).ok is True


# ============================================================================
# Construction
# ============================================================================


class TestInit:
    """Collaborator defaults."""

    def test_defaults_from_config(self):
        service = EchoService()
        assert isinstance(service._target_resolver._store, EnvParameterStore)
        assert isinstance(service._credentials._store, EnvSecretStore)
        assert isinstance(service._connector, AsyncpgConnector)
        assert service._target_resolver.key == "/example/SqlToCwDemo"

    def test_connect_params(self, target):
        config = TargetServiceConfig(database={"port": 6543, "ssl": False, "connect_timeout": 5})
        service = EchoService(config, parameter_store=_store())
        credential = Credential(username="sa", password=SecretStr("pw"))

        params = service._connect_params(target, credential, "postgres")

        assert params.host == "db1.internal"
        assert params.port == 6543
        assert params.database == "postgres"
        assert params.user == "sa"
        assert params.password.get_secret_value() == "pw"
        assert params.ssl is False
        assert params.connect_timeout == 5
        assert params.application_name == "sqlpulse-echo"


# ============================================================================
# Cycle
# ============================================================================


class TestRunCycle:
    """run_cycle() behavior."""

    async def test_outcomes_in_target_order(self):
        service = _service("a", "b", "c")
        report = await service.run_cycle()
        assert [o.value for o in report.outcomes] == ["a", "b", "c"]
        assert report.ok is True

    async def test_failure_isolated(self):
        service = _service("a", "b", "c")
        service.failing = {"b"}

        report = await service.run_cycle()

        assert [o.ok for o in report.outcomes] == [True, False, True]
        assert report.failed == 1
        assert sorted(service.executed) == ["a", "b", "c"]

    async def test_no_targets(self, caplog):
        caplog.set_level(logging.WARNING)
        report = await _service().run_cycle()
        assert report.total == 0
        assert any(r.getMessage() == "no_targets" for r in caplog.records)

    async def test_config_fetch_error_propagates(self, caplog):
        caplog.set_level(logging.ERROR)
        service = EchoService(parameter_store=InMemoryParameterStore())

        with pytest.raises(ConfigFetchError):
            await service.run_cycle()

        assert service.executed == []
        assert any(r.getMessage() == "targets_resolve_failed" for r in caplog.records)

    async def test_config_parse_error_propagates(self):
        store = InMemoryParameterStore({"/example/SqlToCwDemo": "{not json"})
        with pytest.raises(ConfigParseError):
            await EchoService(parameter_store=store).run_cycle()

    async def test_failure_logged_without_credentials(self, caplog):
        caplog.set_level(logging.DEBUG)
        service = _service("a")
        service.failing = {"a"}

        await service.run_cycle()

        failed = [r for r in caplog.records if r.getMessage() == "target_failed"]
        assert len(failed) == 1
        fields = failed[0].structured_kv
        assert fields["server"] == "a"
        assert fields["database"] == "demo"
        assert fields["step"] == UnitStep.QUERY
        assert fields["error"] == "QueryError: boom"
        assert "sec-a" not in caplog.text

    async def test_cycle_completed_logged(self, caplog):
        caplog.set_level(logging.INFO)
        service = _service("a", "b")
        service.failing = {"a"}

        await service.run_cycle()

        completed = [r for r in caplog.records if r.getMessage() == "cycle_completed"]
        assert completed[-1].structured_kv["targets"] == 2
        assert completed[-1].structured_kv["failed"] == 1
        assert completed[-1].structured_kv["succeeded"] == 1


class TestRun:
    """run() success and failure policy."""

    async def test_all_succeed(self):
        await _service("a", "b").run()

    async def test_empty_succeeds(self):
        await _service().run()

    async def test_target_failure_raises_after_all_targets(self):
        service = _service("a", "b", "c")
        service.failing = {"a"}

        with pytest.raises(InvocationError) as exc_info:
            await service.run()

        assert exc_info.value.failed == 1
        assert exc_info.value.total == 3
        assert "1/3 targets failed" in str(exc_info.value)
        assert sorted(service.executed) == ["a", "b", "c"]

    async def test_post_error_raises(self):
        service = _service("a")
        service.post_error = PublishError("sink down")

        with pytest.raises(InvocationError, match="PublishError: sink down") as exc_info:
            await service.run()

        assert exc_info.value.failed == 0

    async def test_records_metrics(self):
        config = TargetServiceConfig(metrics={"enabled": True})
        service = EchoService(config, parameter_store=_store("a", "b"))
        service.failing = {"b"}
        recorded = []
        service.inc_counter = lambda name, value=1: recorded.append((name, value))

        with pytest.raises(InvocationError):
            await service.run()

        assert ("targets_failed_total", 1) in recorded
        assert ("step_failed_query", 1) in recorded
