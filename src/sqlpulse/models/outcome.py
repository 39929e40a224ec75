"""
Per-target outcomes and their aggregate.

A unit of work never raises for an ordinary failure: it returns a
[ConnectionOutcome][sqlpulse.models.outcome.ConnectionOutcome] that is either
a success carrying a payload or a failure carrying the typed error and the
[UnitStep][sqlpulse.models.constants.UnitStep] it came from. The fan-out
collects one outcome per input target, in input order.

See Also:
    [fan_out()][sqlpulse.services.common.fanout.fan_out]: Builds the
        aggregate result.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from .constants import UnitStep
from .target import TargetDescriptor


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ConnectionOutcome(Generic[T]):
    """Result of one unit of work against one target.

    Use [success()][sqlpulse.models.outcome.ConnectionOutcome.success] and
    [failure()][sqlpulse.models.outcome.ConnectionOutcome.failure] instead of
    the constructor.

    Attributes:
        target: The target the unit of work ran against.
        value: Payload on success (``None`` for the write pipeline).
        error: The exception on failure, ``None`` on success.
        step: Step that failed, ``None`` on success.
    """

    target: TargetDescriptor
    value: T | None = None
    error: BaseException | None = None
    step: UnitStep | None = None

    def __post_init__(self) -> None:
        if (self.error is None) != (self.step is None):
            raise ValueError("error and step must be set together")

    @classmethod
    def success(cls, target: TargetDescriptor, value: T) -> ConnectionOutcome[T]:
        return cls(target=target, value=value)

    @classmethod
    def failure(
        cls, target: TargetDescriptor, error: BaseException, step: UnitStep
    ) -> ConnectionOutcome[T]:
        return cls(target=target, error=error, step=UnitStep(step))

    @property
    def ok(self) -> bool:
        return self.error is None

    def describe_error(self) -> str:
        """``ErrorType: message`` for a failure, empty string for a success."""
        if self.error is None:
            return ""
        return f"{type(self.error).__name__}: {self.error}"


AggregateResult = list[ConnectionOutcome[T]]


def successes(outcomes: Sequence[ConnectionOutcome[T]]) -> list[ConnectionOutcome[T]]:
    """Outcomes that succeeded, in their original order."""
    return [o for o in outcomes if o.ok]


def failures(outcomes: Sequence[ConnectionOutcome[T]]) -> list[ConnectionOutcome[T]]:
    """Outcomes that failed, in their original order."""
    return [o for o in outcomes if not o.ok]
