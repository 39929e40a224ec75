"""
Metric samples produced by the read pipeline.

See Also:
    [Sampler][sqlpulse.services.sampler.Sampler]: Produces one sample per
        target.
    [MetricPublisher][sqlpulse.services.sampler.publisher.MetricPublisher]:
        Flattens samples from every target into one batch.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType


class MetricUnit(StrEnum):
    """Units a metric sample can carry.

    Values follow the unit names used by common monitoring backends.
    """

    NONE = "None"
    COUNT = "Count"
    PERCENT = "Percent"
    SECONDS = "Seconds"
    MILLISECONDS = "Milliseconds"
    BYTES = "Bytes"
    COUNT_PER_SECOND = "Count/Second"


@dataclass(frozen=True, slots=True)
class MetricSample:
    """A single named measurement with dimensions.

    Attributes:
        name: Metric name, e.g. ``"TestMetric"``.
        dimensions: Dimension name to value. Stored as a read-only mapping;
            keys are unique by construction.
        unit: [MetricUnit][sqlpulse.models.metric.MetricUnit] of ``value``.
        value: Numeric value.
    """

    name: str
    dimensions: Mapping[str, str] = field(default_factory=dict)
    unit: MetricUnit = MetricUnit.NONE
    value: float = 0

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("metric name must not be empty")
        if isinstance(self.value, bool) or not isinstance(self.value, int | float):
            raise TypeError(f"metric value must be a number, got {type(self.value).__name__}")
        object.__setattr__(self, "unit", MetricUnit(self.unit))
        object.__setattr__(
            self,
            "dimensions",
            MappingProxyType({str(k): str(v) for k, v in self.dimensions.items()}),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MetricSample):
            return NotImplemented
        return (
            self.name == other.name
            and dict(self.dimensions) == dict(other.dimensions)
            and self.unit == other.unit
            and self.value == other.value
        )

    def __hash__(self) -> int:
        return hash((self.name, tuple(sorted(self.dimensions.items())), self.unit, self.value))
