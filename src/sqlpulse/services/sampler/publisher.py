"""
Metric publishing for the read pipeline.

[MetricPublisher][sqlpulse.services.sampler.publisher.MetricPublisher] takes
the aggregate result of a sampler cycle, keeps the successful outcomes,
flattens their sample lists into one batch (target order, then sample
order) and sends it to a
[MetricSink][sqlpulse.services.sampler.sinks.MetricSink] in a single call.

A publish failure is reported as
[PublishError][sqlpulse.core.exceptions.PublishError]; it never changes the
per-target outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlpulse.core.exceptions import PublishError
from sqlpulse.models.outcome import successes


if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlpulse.core.logger import Logger
    from sqlpulse.models.metric import MetricSample
    from sqlpulse.models.outcome import ConnectionOutcome

    from .sinks import MetricSink


@dataclass(frozen=True, slots=True)
class PublishResult:
    """Outcome of one publish call.

    Attributes:
        namespace: Namespace the batch was published under.
        count: Number of samples sent (0 when skipped).
        skipped: True if an empty batch was not sent because the sink
            requires a non-empty one.
    """

    namespace: str
    count: int
    skipped: bool = False


def flatten(outcomes: Sequence[ConnectionOutcome[list[MetricSample]]]) -> list[MetricSample]:
    """Concatenate the samples of all successful outcomes, preserving order."""
    batch: list[MetricSample] = []
    for outcome in successes(outcomes):
        batch.extend(outcome.value or [])
    return batch


class MetricPublisher:
    """Send the samples of one cycle to a sink."""

    def __init__(self, sink: MetricSink, namespace: str, logger: Logger) -> None:
        self._sink = sink
        self._namespace = namespace
        self._logger = logger

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def sink(self) -> MetricSink:
        return self._sink

    async def publish(
        self, outcomes: Sequence[ConnectionOutcome[list[MetricSample]]]
    ) -> PublishResult:
        """Flatten successful outcomes into one batch and publish it.

        Raises:
            PublishError: The sink rejected the batch or could not be reached.
        """
        batch = flatten(outcomes)

        if not batch and getattr(self._sink, "requires_non_empty", False):
            self._logger.warning("publish_skipped", namespace=self._namespace, reason="empty_batch")
            return PublishResult(namespace=self._namespace, count=0, skipped=True)

        self._logger.debug("publish_started", namespace=self._namespace, count=len(batch))
        try:
            await self._sink.put_metrics(self._namespace, batch)
        except PublishError:
            raise
        except Exception as e:  # Intentionally broad: any sink failure is a publish failure
            raise PublishError(f"{type(e).__name__}: {e}") from e

        self._logger.info("metrics_published", namespace=self._namespace, count=len(batch))
        return PublishResult(namespace=self._namespace, count=len(batch))
