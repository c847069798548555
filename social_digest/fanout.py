"""Concurrent fan-out that records each leg's outcome independently."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


@dataclass(frozen=True)
class FanoutFailure(Generic[ItemT]):
    """One failed leg of a fan-out: the input item and the exception it raised."""

    item: ItemT
    error: BaseException


@dataclass(frozen=True)
class FanoutResult(Generic[ItemT, ResultT]):
    succeeded: list[tuple[ItemT, ResultT]] = field(default_factory=list)
    failed: list[FanoutFailure[ItemT]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed

    def values(self) -> list[ResultT]:
        return [value for _, value in self.succeeded]


async def fan_out(
    items: Sequence[ItemT],
    worker: Callable[[ItemT], Awaitable[ResultT]],
    *,
    limit: int | None = None,
) -> FanoutResult[ItemT, ResultT]:
    """
    Run `worker` for every item concurrently and wait for all legs to settle.

    Successes and failures are both reported in input order. `limit` bounds
    how many legs are in flight at once; None or 0 starts them all together.
    Cancellation is not treated as a leg failure and propagates.
    """
    if not items:
        return FanoutResult()

    if limit:
        semaphore = asyncio.Semaphore(int(limit))

        async def _run(item: ItemT) -> ResultT:
            async with semaphore:
                return await worker(item)

    else:
        _run = worker

    outcomes = await asyncio.gather(*(_run(item) for item in items), return_exceptions=True)

    result: FanoutResult[ItemT, ResultT] = FanoutResult()
    for item, outcome in zip(items, outcomes):
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        if isinstance(outcome, BaseException):
            result.failed.append(FanoutFailure(item=item, error=outcome))
        else:
            result.succeeded.append((item, outcome))
    return result
