from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """
    Share one in-flight call per key among concurrent awaiters.

    Every caller that arrives while a call for the same key is pending gets
    that call's result or exception. Once the call settles the key is free
    again, so a failure is never replayed to later callers.
    """

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Task[T]] = {}

    def __len__(self) -> int:
        return len(self._inflight)

    def pending(self, key: str) -> bool:
        return key in self._inflight

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(key, fn))
            self._inflight[key] = task
            task.add_done_callback(_consume_exception)
        # Shielded so one cancelled awaiter does not cancel the shared call.
        return await asyncio.shield(task)

    async def _run(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        try:
            return await fn()
        finally:
            self._inflight.pop(key, None)


def _consume_exception(task: asyncio.Task) -> None:
    if not task.cancelled():
        task.exception()
