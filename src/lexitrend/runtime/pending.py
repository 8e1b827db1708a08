"""In-flight request arena for coalescing identical concurrent work.

Maps a request key to the asyncio.Task doing the work. A task is
registered synchronously by start(), so no other coroutine can observe the
key as free between the membership check and the registration. The entry is
released in the task's own finally block, on success, failure or
cancellation alike.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any, Generic, TypeVar

logger = logging.getLogger("lexitrend.pending")

T = TypeVar("T")


class PendingRequests(Generic[T]):
    """Arena of pending tasks keyed by string. Process-local, never persisted."""

    __slots__ = ("_tasks",)

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[T]] = {}

    def get(self, key: str) -> asyncio.Task[T] | None:
        return self._tasks.get(key)

    def start(self, key: str, work: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        """Schedule work under key and register it before returning.

        Raises:
            RuntimeError: If key already has an in-flight task
        """
        if key in self._tasks:
            work.close()
            raise RuntimeError(f"request already in flight: {key}")
        task = asyncio.ensure_future(self._run(key, work))
        self._tasks[key] = task
        # A task cancelled before its first step never reaches _run's finally
        task.add_done_callback(lambda t: self._release(key, t))
        return task

    async def _run(self, key: str, work: Coroutine[Any, Any, T]) -> T:
        try:
            return await work
        finally:
            self._release(key, asyncio.current_task())

    def _release(self, key: str, task: asyncio.Future[Any] | None) -> None:
        if task is not None and self._tasks.get(key) is task:
            del self._tasks[key]

    async def join(self, key: str, factory: Callable[[], Coroutine[Any, Any, T]]) -> T:
        """Await the in-flight task for key, starting factory() if there is none.

        Callers await through shield(), so abandoning the await never cancels
        the shared task.
        """
        task = self._tasks.get(key)
        if task is None:
            task = self.start(key, factory())
        else:
            logger.debug(f"Coalesced request {key}")
        return await asyncio.shield(task)

    def keys(self) -> list[str]:
        return list(self._tasks)

    def __contains__(self, key: object) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)
