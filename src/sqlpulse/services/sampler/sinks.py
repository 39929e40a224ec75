"""
Metric sinks for the sampler.

A sink receives one batch of
[MetricSample][sqlpulse.models.metric.MetricSample] objects per invocation
under a namespace. Two Prometheus-based sinks are provided:

- [RegistrySink][sqlpulse.services.sampler.sinks.RegistrySink] keeps the
  latest batch and exposes it through a ``prometheus_client`` collector, so
  the service's own ``/metrics`` endpoint serves it. It accepts empty
  batches (the exposed series simply disappear).
- [PushgatewaySink][sqlpulse.services.sampler.sinks.PushgatewaySink] pushes
  each batch to a Pushgateway. An empty push would wipe the previous batch
  for the job, so it requires a non-empty batch.

Prometheus names are derived from ``<namespace>_<metric name>``, lower-cased,
with invalid characters replaced by ``_``; dimensions become labels and the
unit becomes a ``unit`` label.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Protocol

from prometheus_client import REGISTRY, CollectorRegistry, push_to_gateway
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from sqlpulse.core.exceptions import PublishError


if TYPE_CHECKING:
    from prometheus_client.metrics_core import Metric

    from sqlpulse.models.metric import MetricSample

    from .configs import PublisherConfig


_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_]+")


class MetricSink(Protocol):
    """Destination for one batch of samples.

    Attributes:
        requires_non_empty: If True, an empty batch must not be sent.
    """

    requires_non_empty: bool

    async def put_metrics(self, namespace: str, batch: Sequence[MetricSample]) -> None: ...


def prometheus_name(namespace: str, name: str) -> str:
    """Build a valid Prometheus metric name from namespace and metric name."""
    combined = _INVALID_NAME_CHARS.sub("_", f"{namespace}_{name}").strip("_").lower()
    if not combined:
        raise ValueError(f"cannot build a metric name from {namespace!r} and {name!r}")
    if combined[0].isdigit():
        combined = f"_{combined}"
    return combined


def label_name(dimension: str) -> str:
    """Build a valid Prometheus label name from a dimension name."""
    label = _INVALID_NAME_CHARS.sub("_", dimension).lower()
    if not label or label.startswith("__"):
        raise ValueError(f"invalid dimension name: {dimension!r}")
    if label[0].isdigit():
        label = f"_{label}"
    return label


def build_families(namespace: str, batch: Sequence[MetricSample]) -> list[GaugeMetricFamily]:
    """Group samples into one gauge family per metric name.

    Samples sharing a name but with different dimension sets are merged into
    one family whose labels are the union; missing labels are left empty.

    Raises:
        ValueError: If a name or dimension cannot be expressed in Prometheus.
    """
    grouped: dict[str, list[MetricSample]] = {}
    for sample in batch:
        grouped.setdefault(prometheus_name(namespace, sample.name), []).append(sample)

    families: list[GaugeMetricFamily] = []
    for metric_name, samples in grouped.items():
        dimension_keys = sorted({k for s in samples for k in s.dimensions})
        labels = [label_name(k) for k in dimension_keys]
        if len(set(labels)) != len(labels) or "unit" in labels:
            raise ValueError(f"dimension names collide for metric {metric_name!r}")
        family = GaugeMetricFamily(
            metric_name,
            f"{samples[0].name} published under {namespace}",
            labels=[*labels, "unit"],
        )
        for sample in samples:
            values = [sample.dimensions.get(k, "") for k in dimension_keys]
            family.add_metric([*values, str(sample.unit)], float(sample.value))
        families.append(family)
    return families


class _BatchCollector(Collector):
    """Collector serving a fixed list of metric families."""

    def __init__(self, families: list[GaugeMetricFamily] | None = None) -> None:
        self.families: list[GaugeMetricFamily] = families or []

    def describe(self) -> list[Metric]:
        # Names change from batch to batch; skip registration-time checks
        return []

    def collect(self) -> Iterator[Metric]:
        yield from self.families


def _check_size(batch: Sequence[MetricSample], max_batch_size: int) -> None:
    if len(batch) > max_batch_size:
        raise PublishError(f"batch of {len(batch)} samples exceeds limit of {max_batch_size}")


class RegistrySink:
    """Expose the latest batch through a ``prometheus_client`` registry.

    The collector is attached on the first batch and detached by
    [close()][sqlpulse.services.sampler.sinks.RegistrySink.close]; the
    samples are only visible while something serves the registry.

    Args:
        registry: Registry to attach to. Defaults to the global registry,
            which the service's [MetricsServer][sqlpulse.core.metrics.MetricsServer]
            serves.
        max_batch_size: Largest accepted batch.
    """

    requires_non_empty = False

    def __init__(
        self, registry: CollectorRegistry = REGISTRY, max_batch_size: int = 1000
    ) -> None:
        self._collector = _BatchCollector()
        self._registry = registry
        self._max_batch_size = max_batch_size
        self._attached = False

    def close(self) -> None:
        """Detach from the registry and drop the exposed batch. Idempotent."""
        if self._attached:
            self._registry.unregister(self._collector)
            self._attached = False
        self._collector.families = []

    async def put_metrics(self, namespace: str, batch: Sequence[MetricSample]) -> None:
        _check_size(batch, self._max_batch_size)
        try:
            families = build_families(namespace, batch)
        except ValueError as e:
            raise PublishError(str(e)) from e
        self._collector.families = families
        if not self._attached:
            self._registry.register(self._collector)
            self._attached = True


class PushgatewaySink:
    """Push every batch to a Prometheus Pushgateway.

    Each batch replaces the previous one for the same job and namespace
    grouping key. The blocking HTTP push runs in a worker thread.
    """

    requires_non_empty = True

    def __init__(
        self,
        gateway_url: str,
        job: str = "sqlpulse_sampler",
        *,
        timeout: float = 10.0,
        max_batch_size: int = 1000,
    ) -> None:
        self._gateway_url = gateway_url
        self._job = job
        self._timeout = timeout
        self._max_batch_size = max_batch_size

    async def put_metrics(self, namespace: str, batch: Sequence[MetricSample]) -> None:
        _check_size(batch, self._max_batch_size)
        try:
            families = build_families(namespace, batch)
        except ValueError as e:
            raise PublishError(str(e)) from e

        registry = CollectorRegistry()
        registry.register(_BatchCollector(families))
        try:
            await asyncio.to_thread(
                push_to_gateway,
                self._gateway_url,
                job=self._job,
                registry=registry,
                grouping_key={"namespace": namespace},
                timeout=self._timeout,
            )
        except OSError as e:
            raise PublishError(f"push to {self._gateway_url} failed: {e}") from e


def build_sink(config: PublisherConfig) -> MetricSink:
    """Instantiate the sink named by ``config.sink``."""
    if config.sink == "pushgateway":
        if not config.gateway_url:
            raise ValueError("gateway_url is required for the pushgateway sink")
        return PushgatewaySink(
            config.gateway_url,
            config.job,
            timeout=config.timeout,
            max_batch_size=config.max_batch_size,
        )
    return RegistrySink(max_batch_size=config.max_batch_size)
