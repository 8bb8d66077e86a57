"""Single writer for the tree model and navigation state.

The gateway reader and the input handlers never mutate shared state
directly: they ``submit`` callables, and ``run`` applies them one at a time.
Remote work goes through ``spawn`` and reports back through the same queue.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set, Tuple

log = logging.getLogger(__name__)

Mutation = Tuple[Callable[..., Any], Tuple[Any, ...]]


class MutationOwner:
    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Mutation]" = asyncio.Queue()
        self._tasks: Set[asyncio.Task] = set()

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        self._queue.put_nowait((fn, args))

    def _apply(self, fn: Callable[..., Any], args: Tuple[Any, ...]) -> None:
        try:
            fn(*args)
        except Exception:
            log.exception("mutation %r failed", getattr(fn, "__qualname__", fn))

    async def run(self) -> None:
        while True:
            fn, args = await self._queue.get()
            try:
                self._apply(fn, args)
            finally:
                self._queue.task_done()

    def drain(self) -> int:
        """Apply everything already queued without yielding. Returns the count."""
        count = 0
        while True:
            try:
                fn, args = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return count
            try:
                self._apply(fn, args)
            finally:
                self._queue.task_done()
            count += 1

    def spawn(
        self,
        coro: Awaitable[Any],
        on_result: Optional[Callable[[Any], Any]] = None,
        on_error: Optional[Callable[[BaseException], Any]] = None,
    ) -> asyncio.Task:
        """Run *coro* as a fire-and-forget task; its outcome is queued back."""
        task = asyncio.ensure_future(self._guard(coro, on_result, on_error))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, coro, on_result, on_error) -> None:
        try:
            result = await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if on_error is not None:
                self.submit(on_error, e)
            else:
                log.warning("background task failed: %s: %s", type(e).__name__, e)
            return
        if on_result is not None:
            self.submit(on_result, result)

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def settle(self) -> None:
        """Wait for spawned tasks, then apply what they queued."""
        while True:
            while self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            if not self.drain() and not self._tasks:
                return

    async def shutdown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def join(self) -> None:
        """Wait until ``run`` has applied everything queued so far."""
        await self._queue.join()
