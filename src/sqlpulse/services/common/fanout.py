"""
Concurrent dispatch of one unit of work per target.

[fan_out()][sqlpulse.services.common.fanout.fan_out] launches every unit of
work before awaiting any of them and joins on all of them with
``asyncio.gather(..., return_exceptions=True)``: a failing target never
cancels its siblings, and the aggregate always holds one outcome per input
target in input order.

Units of work are expected to report ordinary failures as
[ConnectionOutcome.failure()][sqlpulse.models.outcome.ConnectionOutcome.failure].
Anything that still escapes is converted into a failure tagged
``UnitStep.UNEXPECTED`` for that target only. ``CancelledError`` is re-raised
after the join.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from sqlpulse.models.constants import UnitStep
from sqlpulse.models.outcome import AggregateResult, ConnectionOutcome
from sqlpulse.models.target import TargetDescriptor


T = TypeVar("T")

UnitOfWork = Callable[[TargetDescriptor], Awaitable[ConnectionOutcome[T]]]


async def fan_out(
    targets: Sequence[TargetDescriptor],
    unit_of_work: UnitOfWork[T],
    *,
    max_parallel: int | None = None,
) -> AggregateResult[T]:
    """Run ``unit_of_work`` for every target concurrently and collect all outcomes.

    Args:
        targets: Targets to process.
        unit_of_work: Coroutine function returning a
            [ConnectionOutcome][sqlpulse.models.outcome.ConnectionOutcome].
        max_parallel: Optional cap on units of work in flight. ``None``
            dispatches all targets at once.

    Returns:
        One outcome per target; ``result[i]`` belongs to ``targets[i]``
        regardless of completion order.

    Raises:
        ValueError: If ``max_parallel`` is smaller than 1.
    """
    if max_parallel is not None and max_parallel < 1:
        raise ValueError(f"max_parallel must be >= 1, got {max_parallel}")
    if not targets:
        return []

    semaphore = asyncio.Semaphore(max_parallel) if max_parallel else None

    async def _bounded(target: TargetDescriptor) -> ConnectionOutcome[T]:
        if semaphore is None:
            return await unit_of_work(target)
        async with semaphore:
            return await unit_of_work(target)

    results = await asyncio.gather(*(_bounded(t) for t in targets), return_exceptions=True)

    # gather(return_exceptions=True) captures CancelledError as a result
    for r in results:
        if isinstance(r, asyncio.CancelledError):
            raise r

    outcomes: AggregateResult[T] = []
    for target, result in zip(targets, results, strict=True):
        if isinstance(result, ConnectionOutcome):
            outcomes.append(result)
        elif isinstance(result, BaseException):
            outcomes.append(ConnectionOutcome.failure(target, result, UnitStep.UNEXPECTED))
        else:
            outcomes.append(
                ConnectionOutcome.failure(
                    target,
                    TypeError(f"unit of work returned {type(result).__name__}"),
                    UnitStep.UNEXPECTED,
                )
            )
    return outcomes
