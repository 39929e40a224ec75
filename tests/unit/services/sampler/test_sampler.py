"""
Unit tests for services.sampler.service module.

Tests:
- SamplerConfig / PublisherConfig defaults and validation
- execute(): one sample per target from the latest row
- execute(): failures tagged with the step that failed
- Publishing after the fan-out, including publish failures
"""

import http.client
import logging

import asyncpg
import pytest
from prometheus_client import REGISTRY, CollectorRegistry
from pydantic import ValidationError

from sqlpulse.core.exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    EmptyResultError,
    InvocationError,
    PublishError,
    QueryError,
    SecretFetchError,
)
from sqlpulse.models import MetricSample, MetricUnit, UnitStep
from sqlpulse.services.sampler import PublisherConfig, Sampler, SamplerConfig
from sqlpulse.services.sampler.sinks import PushgatewaySink, RegistrySink


TABLE = "SqlToCwTable"


@pytest.fixture
def seeded(connector):
    """Target database holding three rows; the latest has countItems=42."""
    connector.servers["db1.internal"].databases["demo"] = {TABLE: [10, 20, 42]}
    return connector


# ============================================================================
# Configs
# ============================================================================


class TestConfigs:
    """SamplerConfig defaults and validation."""

    def test_defaults(self):
        config = SamplerConfig()
        assert config.sample.metric_name == "TestMetric"
        assert config.sample.unit is MetricUnit.COUNT
        assert config.publisher.namespace == "TestNamespace"
        assert config.publisher.sink == "registry"

    def test_pushgateway_requires_url(self):
        with pytest.raises(ValidationError):
            PublisherConfig(sink="pushgateway")

    def test_pushgateway_with_url(self):
        config = PublisherConfig(sink="pushgateway", gateway_url="http://pg:9091")
        assert config.gateway_url == "http://pg:9091"

    def test_unit_from_string(self):
        assert SamplerConfig(sample={"unit": "Percent"}).sample.unit is MetricUnit.PERCENT

    def test_pushgateway_sink_built(self, parameter_store, secret_store, connector):
        sampler = Sampler(
            SamplerConfig(publisher={"sink": "pushgateway", "gateway_url": "http://pg:9091"}),
            parameter_store=parameter_store,
            secret_store=secret_store,
            connector=connector,
        )
        assert isinstance(sampler._publisher._sink, PushgatewaySink)


# ============================================================================
# execute()
# ============================================================================


class TestExecute:
    """Read unit of work."""

    async def test_latest_row_sampled(self, sampler, seeded, target):
        outcome = await sampler.execute(target)

        assert outcome.ok is True
        assert outcome.value == [
            MetricSample(
                name="TestMetric",
                dimensions={"server": "db1.internal", "database": "demo"},
                unit=MetricUnit.COUNT,
                value=42,
            )
        ]

    async def test_connects_to_target_database_only(self, sampler, seeded, target):
        await sampler.execute(target)

        assert [p.database for p in seeded.params] == ["demo"]
        assert all(c.closed for c in seeded.connections)

    async def test_custom_metric_name(self, parameter_store, secret_store, seeded, sink, target):
        sampler = Sampler(
            SamplerConfig(sample={"metric_name": "RowsSeen", "unit": "None"}),
            parameter_store=parameter_store,
            secret_store=secret_store,
            connector=seeded,
            sink=sink,
        )
        [sample] = (await sampler.execute(target)).value
        assert sample.name == "RowsSeen"
        assert sample.unit is MetricUnit.NONE

    async def test_build_samples(self, sampler, target):
        [sample] = sampler.build_samples(target, 7)
        assert sample.value == 7
        assert dict(sample.dimensions) == {"server": "db1.internal", "database": "demo"}


class TestExecuteFailures:
    """Step tagging of failures."""

    async def test_missing_secret(self, sampler, secret_store, target):
        secret_store.values.clear()
        outcome = await sampler.execute(target)
        assert outcome.step is UnitStep.RESOLVE_CREDENTIALS
        assert isinstance(outcome.error, SecretFetchError)

    async def test_database_missing(self, sampler, target):
        outcome = await sampler.execute(target)
        assert outcome.step is UnitStep.CONNECT
        assert isinstance(outcome.error, DatabaseConnectionError)

    async def test_table_missing(self, sampler, connector, target):
        connector.servers["db1.internal"].databases["demo"] = {}

        outcome = await sampler.execute(target)

        assert outcome.step is UnitStep.QUERY
        assert isinstance(outcome.error, QueryError)
        assert isinstance(outcome.error.__cause__, asyncpg.UndefinedTableError)

    async def test_empty_table(self, sampler, connector, target):
        connector.servers["db1.internal"].databases["demo"] = {TABLE: []}

        outcome = await sampler.execute(target)

        assert outcome.step is UnitStep.EXTRACT
        assert isinstance(outcome.error, EmptyResultError)

    async def test_query_timeout(self, sampler, seeded, target):
        seeded.servers["db1.internal"].failures["SELECT id"] = TimeoutError()

        outcome = await sampler.execute(target)

        assert outcome.step is UnitStep.QUERY
        assert isinstance(outcome.error, QueryError)
        assert all(c.closed for c in seeded.connections)


# ============================================================================
# Publishing
# ============================================================================


class TestPublishing:
    """Publishing after the fan-out."""

    async def test_publishes_one_batch(self, sampler, seeded, sink):
        await sampler.run()

        assert len(sink.calls) == 1
        namespace, batch = sink.calls[0]
        assert namespace == "TestNamespace"
        assert [s.value for s in batch] == [42]

    async def test_failed_target_excluded_and_invocation_fails(self, sampler, sink):
        with pytest.raises(InvocationError) as exc_info:
            await sampler.run()

        assert exc_info.value.failed == 1
        assert sink.calls == [("TestNamespace", [])]

    async def test_publish_failure_keeps_outcomes(self, sampler, seeded, sink, caplog):
        caplog.set_level(logging.ERROR)
        sink.error = PublishError("throttled")

        report = await sampler.run_cycle()

        assert report.failed == 0
        assert isinstance(report.post_error, PublishError)
        assert report.details == {"published": 0}
        assert any(r.getMessage() == "publish_failed" for r in caplog.records)

    async def test_publish_failure_fails_invocation(self, sampler, seeded, sink):
        sink.error = PublishError("throttled")
        with pytest.raises(InvocationError, match="throttled"):
            await sampler.run()

    async def test_unexpected_sink_error_becomes_publish_failure(self, sampler, seeded, sink):
        sink.error = http.client.BadStatusLine("garbage")

        report = await sampler.run_cycle()

        assert report.failed == 0
        assert isinstance(report.post_error, PublishError)
        assert isinstance(report.post_error.__cause__, http.client.BadStatusLine)

    async def test_unexpected_sink_error_fails_invocation(self, sampler, seeded, sink):
        sink.error = http.client.BadStatusLine("garbage")
        with pytest.raises(InvocationError, match="PublishError"):
            await sampler.run()

    async def test_details_reported(self, sampler, seeded):
        report = await sampler.run_cycle()
        assert report.details == {"published": 1, "publish_skipped": False}


# ============================================================================
# Run mode and lifecycle
# ============================================================================


LABELS = {"server": "db1.internal", "database": "demo", "unit": "Count"}


@pytest.fixture
def default_sink_sampler(parameter_store, secret_store, connector):
    """Sampler building its own sink from a continuous-mode config."""
    return Sampler(
        SamplerConfig(metrics={"enabled": True}),
        parameter_store=parameter_store,
        secret_store=secret_store,
        connector=connector,
    )


class TestRunMode:
    """check_run_mode() against the configured sink."""

    def test_registry_sink_rejected_once(self, default_sink_sampler):
        with pytest.raises(ConfigurationError, match="pushgateway"):
            default_sink_sampler.check_run_mode(once=True)

    def test_registry_sink_allowed_continuous(self, default_sink_sampler):
        default_sink_sampler.check_run_mode(once=False)

    def test_registry_sink_needs_metrics_endpoint(self, parameter_store, secret_store, connector):
        sampler = Sampler(
            SamplerConfig(metrics={"enabled": False}),
            parameter_store=parameter_store,
            secret_store=secret_store,
            connector=connector,
        )
        with pytest.raises(ConfigurationError, match="metrics.enabled"):
            sampler.check_run_mode(once=False)

    def test_pushgateway_allowed_once(self, parameter_store, secret_store, connector):
        sampler = Sampler(
            SamplerConfig(publisher={"sink": "pushgateway", "gateway_url": "http://pg:9091"}),
            parameter_store=parameter_store,
            secret_store=secret_store,
            connector=connector,
        )
        sampler.check_run_mode(once=True)

    def test_other_sink_allowed_once(self, sampler):
        sampler.check_run_mode(once=True)


class TestLifecycle:
    """Sink cleanup when the service stops."""

    async def test_owned_registry_sink_detached_on_exit(self, default_sink_sampler, seeded):
        async with default_sink_sampler:
            await default_sink_sampler.run_cycle()
            assert REGISTRY.get_sample_value("testnamespace_testmetric", LABELS) == 42.0

        assert REGISTRY.get_sample_value("testnamespace_testmetric", LABELS) is None

    async def test_exit_without_publishing(self, default_sink_sampler):
        async with default_sink_sampler:
            pass
        assert REGISTRY.get_sample_value("testnamespace_testmetric", LABELS) is None

    async def test_injected_sink_left_open(self, parameter_store, secret_store, seeded):
        registry = CollectorRegistry()
        sampler = Sampler(
            SamplerConfig(),
            parameter_store=parameter_store,
            secret_store=secret_store,
            connector=seeded,
            sink=RegistrySink(registry),
        )
        async with sampler:
            await sampler.run_cycle()

        assert registry.get_sample_value("testnamespace_testmetric", LABELS) == 42.0
