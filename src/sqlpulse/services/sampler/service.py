"""Sampler service for sqlpulse.

Reads the most recent row of the seeded table on every configured target
and publishes one metric per target. For each target the unit of work:

1. resolves the target's credentials;
2. connects directly to the target database;
3. selects the latest row (highest ``id``) and extracts ``countItems``;
4. turns it into a [MetricSample][sqlpulse.models.metric.MetricSample]
   with ``server`` and ``database`` dimensions.

After every target has finished, the samples of the successful targets are
flattened into one batch and published through
[MetricPublisher][sqlpulse.services.sampler.publisher.MetricPublisher].

Note:
    ``execute()`` returns a list of samples even though it produces exactly
    one today, so more metrics per target can be added without changing
    the outcome type.

See Also:
    [Loader][sqlpulse.services.loader.Loader]: Writes the rows this
        service samples.
    [SamplerConfig][sqlpulse.services.sampler.SamplerConfig]: Configuration
        model for this service.

Examples:
    ```python
    from sqlpulse.services.sampler import Sampler

    sampler = Sampler.from_yaml("config/services/sampler.yaml")
    async with sampler:
        await sampler.run()
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from sqlpulse.core.database import connect
from sqlpulse.core.exceptions import (
    ConfigurationError,
    EmptyResultError,
    PublishError,
    SqlPulseError,
)
from sqlpulse.models.constants import ServiceName, UnitStep
from sqlpulse.models.metric import MetricSample
from sqlpulse.models.outcome import ConnectionOutcome
from sqlpulse.services.common.queries import fetch_latest_count
from sqlpulse.services.common.service import (
    UNIT_OF_WORK_ERRORS,
    CycleReport,
    TargetService,
    classify_error,
)

from .configs import SamplerConfig
from .publisher import MetricPublisher
from .sinks import RegistrySink, build_sink


if TYPE_CHECKING:
    from types import TracebackType

    from sqlpulse.core.database import Connector
    from sqlpulse.models.target import TargetDescriptor
    from sqlpulse.stores.base import ParameterStore, SecretStore

    from .sinks import MetricSink


class Sampler(TargetService[SamplerConfig, list[MetricSample]]):
    """Read pipeline: sample the latest row per target and publish it.

    See Also:
        [TargetService][sqlpulse.services.common.service.TargetService]:
            Resolve/fan-out/report cycle this class plugs into.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.SAMPLER
    CONFIG_CLASS: ClassVar[type[SamplerConfig]] = SamplerConfig

    def __init__(
        self,
        config: SamplerConfig | None = None,
        *,
        parameter_store: ParameterStore | None = None,
        secret_store: SecretStore | None = None,
        connector: Connector | None = None,
        sink: MetricSink | None = None,
    ) -> None:
        super().__init__(
            config=config,
            parameter_store=parameter_store,
            secret_store=secret_store,
            connector=connector,
        )
        self._owns_sink = sink is None
        self._publisher = MetricPublisher(
            sink or build_sink(self._config.publisher),
            self._config.publisher.namespace,
            self._logger,
        )

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._owns_sink and isinstance(self._publisher.sink, RegistrySink):
            self._publisher.sink.close()
        await super().__aexit__(exc_type, exc_val, exc_tb)

    def check_run_mode(self, *, once: bool) -> None:
        """Reject a registry sink when nothing will scrape it.

        A [RegistrySink][sqlpulse.services.sampler.sinks.RegistrySink] is
        only read through the metrics endpoint of a continuously running
        service. In one-shot mode, or with metrics disabled, the batch would
        be dropped while the invocation reports success.

        Raises:
            ConfigurationError: The registry sink is configured for a run
                that does not serve it.
        """
        if not isinstance(self._publisher.sink, RegistrySink):
            return
        if once:
            raise ConfigurationError(
                "publisher sink 'registry' is only served while the service runs "
                "continuously; use sink 'pushgateway' with --once"
            )
        if not self._config.metrics.enabled:
            raise ConfigurationError(
                "publisher sink 'registry' requires metrics.enabled to serve the samples"
            )

    # -------------------------------------------------------------------------
    # Unit of Work
    # -------------------------------------------------------------------------

    def build_samples(self, target: TargetDescriptor, count_items: int) -> list[MetricSample]:
        """Samples reported for one target."""
        return [
            MetricSample(
                name=self._config.sample.metric_name,
                dimensions={"server": target.server_address, "database": target.database_name},
                unit=self._config.sample.unit,
                value=count_items,
            )
        ]

    async def execute(self, target: TargetDescriptor) -> ConnectionOutcome[list[MetricSample]]:
        """Sample the latest row of ``target``.

        Returns:
            ``success(target, [sample])``, or a failure tagged with the step
            that failed. An empty table fails with
            [EmptyResultError][sqlpulse.core.exceptions.EmptyResultError].
        """
        table = self._config.table
        step = UnitStep.RESOLVE_CREDENTIALS
        try:
            credential = await self._credentials.resolve(target.credential_ref)

            step = UnitStep.CONNECT
            params = self._connect_params(target, credential, target.database_name)
            async with connect(self._connector, params) as conn:
                step = UnitStep.QUERY
                count_items = await fetch_latest_count(conn, table)

            step = UnitStep.EXTRACT
            if count_items is None:
                raise EmptyResultError(f"table {table!r} on {target.label} has no rows")
            samples = self.build_samples(target, count_items)

        except SqlPulseError as e:
            return ConnectionOutcome.failure(target, e, step)
        except UNIT_OF_WORK_ERRORS as e:
            return ConnectionOutcome.failure(target, classify_error(step, e), step)

        self._logger.debug("row_sampled", count_items=count_items, **target.log_fields())
        return ConnectionOutcome.success(target, samples)

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------

    async def _after_fan_out(self, report: CycleReport[list[MetricSample]]) -> None:
        """Publish the samples of every successful target."""
        try:
            result = await self._publisher.publish(report.outcomes)
        except PublishError as e:
            self._logger.error(
                "publish_failed", namespace=self._publisher.namespace, error=str(e)
            )
            self.inc_counter("publish_failed_total")
            report.post_error = e
            report.details = {"published": 0}
            return

        self.inc_counter("samples_published_total", result.count)
        report.details = {"published": result.count, "publish_skipped": result.skipped}
