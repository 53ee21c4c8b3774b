"""Async debounce helper used by the editor widgets."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

LOG = logging.getLogger(__name__)


class Debouncer:
    """Utility that coalesces rapid-fire calls into a single coroutine run.

    Only the waiting invocation is cancelled by a new submission. Once the
    quiet period elapsed the invocation keeps running; callers that care
    about superseded results tag them with a request token.
    """

    def __init__(self, delay: float = 0.3) -> None:
        self._delay = delay
        self._task: asyncio.Task[Any] | None = None
        self._running: set[asyncio.Future[Any]] = set()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """Whether an invocation is still waiting for its quiet period."""

        return self._task is not None and not self._task.done()

    def submit(self, coro_factory: Callable[[], Awaitable[Any]]) -> None:
        """Schedule a coroutine, cancelling any pending invocation."""

        self.cancel()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._runner(coro_factory))

    def cancel(self) -> None:
        """Cancel any pending invocation."""

        if self._task:
            self._task.cancel()
            self._task = None

    def close(self) -> None:
        """Cancel the pending invocation and every running one."""

        self.cancel()
        for future in tuple(self._running):
            future.cancel()
        self._running.clear()

    async def drain(self) -> None:
        """Wait until nothing is pending or running (testing helper)."""

        while self.pending or self._running:
            waiting = [task for task in (self._task,) if task is not None]
            waiting.extend(self._running)
            await asyncio.gather(*waiting, return_exceptions=True)

    async def _runner(self, coro_factory: Callable[[], Awaitable[Any]]) -> None:
        try:
            await asyncio.sleep(self._delay)
        except asyncio.CancelledError:
            return
        if self._task is asyncio.current_task():
            self._task = None
        future = asyncio.ensure_future(coro_factory())
        self._running.add(future)
        future.add_done_callback(self._finished)

    def _finished(self, future: asyncio.Future[Any]) -> None:
        self._running.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            LOG.error("Debounced invocation failed", exc_info=exc)


__all__ = ["Debouncer"]
