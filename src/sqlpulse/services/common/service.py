"""
Shared cycle for services that fan out over database targets.

``TargetService`` implements one invocation as:

1. resolve the target list
   ([TargetListResolver][sqlpulse.services.common.resolvers.TargetListResolver]);
   failure here is fatal to the invocation;
2. run the subclass's ``execute()`` for every target through
   [fan_out()][sqlpulse.services.common.fanout.fan_out];
3. log and count every outcome;
4. hand the aggregate to ``_after_fan_out()`` (the sampler publishes there);
5. raise [InvocationError][sqlpulse.core.exceptions.InvocationError] if any
   target or the post-processing step failed.

Per-target log lines carry ``server`` and ``database``; credentials never
reach the logger.
"""

from __future__ import annotations

import time
from abc import abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import asyncpg

from sqlpulse.core.base_service import BaseService
from sqlpulse.core.database import AsyncpgConnector, ConnectParams
from sqlpulse.core.exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    InvocationError,
    QueryError,
    SchemaEnsureError,
    SqlPulseError,
)
from sqlpulse.core.metrics import UNIT_OF_WORK_SECONDS
from sqlpulse.models.constants import UnitStep
from sqlpulse.models.outcome import AggregateResult, ConnectionOutcome, failures
from sqlpulse.stores import build_parameter_store, build_secret_store

from .configs import TargetServiceConfig
from .fanout import fan_out
from .resolvers import CredentialResolver, TargetListResolver


if TYPE_CHECKING:
    from sqlpulse.core.database import Connector
    from sqlpulse.models.credential import Credential
    from sqlpulse.models.target import TargetDescriptor
    from sqlpulse.stores.base import ParameterStore, SecretStore


T = TypeVar("T")
TargetConfigT = TypeVar("TargetConfigT", bound=TargetServiceConfig)

# Exceptions a unit of work translates into typed errors: driver failures plus
# ValueError from identifier validation
UNIT_OF_WORK_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    TimeoutError,
    ValueError,
)


def classify_error(step: UnitStep, exc: BaseException) -> SqlPulseError:
    """Wrap a driver exception in the typed error for the step it came from."""
    if isinstance(exc, SqlPulseError):
        return exc
    detail = f"{step}: {type(exc).__name__}: {exc}"
    if step is UnitStep.CONNECT:
        error: SqlPulseError = DatabaseConnectionError(detail)
    elif step in (UnitStep.ENSURE_DATABASE, UnitStep.ENSURE_TABLE):
        error = SchemaEnsureError(detail)
    else:
        error = QueryError(detail)
    error.__cause__ = exc
    return error


@dataclass(slots=True)
class CycleReport(Generic[T]):
    """What happened during one invocation.

    Attributes:
        outcomes: One outcome per target, in target-list order.
        post_error: Failure of the step after the fan-out (publishing for
            the sampler), if any. Does not change ``outcomes``.
        details: Free-form results of the post step, for logging.
    """

    outcomes: AggregateResult[T]
    post_error: SqlPulseError | None = None
    details: dict[str, Any] | None = None

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def failed(self) -> int:
        return len(failures(self.outcomes))

    @property
    def succeeded(self) -> int:
        return self.total - self.failed

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.post_error is None


class TargetService(BaseService[TargetConfigT], Generic[TargetConfigT, T]):
    """Base class for the loader and sampler pipelines.

    Subclasses implement [execute()][sqlpulse.services.common.service.TargetService.execute]
    (one target's unit of work) and may override ``_after_fan_out()``.

    Collaborators default to the backends named in the configuration and
    to [AsyncpgConnector][sqlpulse.core.database.AsyncpgConnector]; pass
    them explicitly to run against other backends or test doubles.
    """

    def __init__(
        self,
        config: TargetConfigT | None = None,
        *,
        parameter_store: ParameterStore | None = None,
        secret_store: SecretStore | None = None,
        connector: Connector | None = None,
    ) -> None:
        super().__init__(config=config)
        targets = self._config.targets
        self._target_resolver = TargetListResolver(
            parameter_store or build_parameter_store(targets.store),
            key=targets.key,
            field=targets.field,
        )
        self._credentials = CredentialResolver(
            secret_store or build_secret_store(self._config.secrets.store)
        )
        self._connector: Connector = connector or AsyncpgConnector()

    # -------------------------------------------------------------------------
    # Unit of Work
    # -------------------------------------------------------------------------

    @abstractmethod
    async def execute(self, target: TargetDescriptor) -> ConnectionOutcome[T]:
        """Run this service's unit of work against one target.

        Ordinary failures are returned as
        [ConnectionOutcome.failure()][sqlpulse.models.outcome.ConnectionOutcome.failure],
        never raised.
        """
        ...

    def _connect_params(
        self, target: TargetDescriptor, credential: Credential, database: str
    ) -> ConnectParams:
        db = self._config.database
        return ConnectParams(
            host=target.server_address,
            port=db.port,
            database=database,
            user=credential.username,
            password=credential.password,
            ssl=db.ssl,
            verify_certificate=db.verify_certificate,
            connect_timeout=db.connect_timeout,
            command_timeout=db.command_timeout,
            application_name=f"sqlpulse-{self.SERVICE_NAME}",
        )

    async def _timed_execute(self, target: TargetDescriptor) -> ConnectionOutcome[T]:
        """Run ``execute()`` for one target and log its outcome."""
        self._logger.debug("target_started", **target.log_fields())
        start = time.monotonic()
        outcome = await self.execute(target)
        duration = time.monotonic() - start

        if self._config.metrics.enabled:
            UNIT_OF_WORK_SECONDS.labels(
                service=self.SERVICE_NAME, outcome="success" if outcome.ok else "failure"
            ).observe(duration)

        if outcome.ok:
            self._logger.info(
                "target_completed", duration_s=round(duration, 3), **target.log_fields()
            )
        else:
            self._logger.warning(
                "target_failed",
                step=outcome.step,
                error=outcome.describe_error(),
                **target.log_fields(),
            )
        return outcome

    # -------------------------------------------------------------------------
    # Cycle
    # -------------------------------------------------------------------------

    async def run_cycle(self) -> CycleReport[T]:
        """Resolve targets, fan out, post-process, and report.

        Raises:
            ConfigFetchError: The target list could not be fetched.
            ConfigParseError: The target list could not be parsed.
        """
        start = time.monotonic()
        try:
            targets = await self._target_resolver.resolve()
        except ConfigurationError as e:
            self._logger.error(
                "targets_resolve_failed",
                key=self._target_resolver.key,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        if not targets:
            self._logger.warning("no_targets", key=self._target_resolver.key)
        else:
            self._logger.info("cycle_started", targets=len(targets))

        outcomes = await fan_out(
            targets,
            self._timed_execute,
            max_parallel=self._config.concurrency.max_parallel,
        )
        report: CycleReport[T] = CycleReport(outcomes=outcomes)
        self._record(report)

        await self._after_fan_out(report)

        self._logger.info(
            "cycle_completed",
            targets=report.total,
            succeeded=report.succeeded,
            failed=report.failed,
            duration_s=round(time.monotonic() - start, 2),
            **(report.details or {}),
        )
        return report

    async def _after_fan_out(self, report: CycleReport[T]) -> None:
        """Hook run after every target has finished. No-op by default."""

    def _record(self, report: CycleReport[T]) -> None:
        self.set_gauge("targets", report.total)
        self.set_gauge("targets_failed", report.failed)
        self.inc_counter("targets_succeeded_total", report.succeeded)
        self.inc_counter("targets_failed_total", report.failed)
        for outcome in failures(report.outcomes):
            self.inc_counter(f"step_failed_{outcome.step}")

    async def run(self) -> None:
        """Run one invocation; raise if anything failed.

        Raises:
            ConfigFetchError: The target list could not be fetched.
            ConfigParseError: The target list could not be parsed.
            InvocationError: At least one target, or the post-processing
                step, failed. Raised only after every target finished.
        """
        report = await self.run_cycle()
        if report.ok:
            return
        reasons = []
        if report.failed:
            reasons.append(f"{report.failed}/{report.total} targets failed")
        if report.post_error is not None:
            reasons.append(f"{type(report.post_error).__name__}: {report.post_error}")
        raise InvocationError("; ".join(reasons), failed=report.failed, total=report.total)
