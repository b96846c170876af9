"""Bounded-concurrency request queue.

Every outbound provider call is submitted here. Work is always accepted;
at most ``max_concurrent`` tasks run at once and the rest wait in a FIFO
deque. Tasks start in enqueue order, but finish in whatever order their
network calls settle.

Per-task lifecycle: queued -> running -> settled (result or exception).
Only queued tasks can be dropped (``clear``); running tasks always finish.

Usage:
    queue = RequestQueue(max_concurrent=3)
    result = await queue.add(lambda: call_provider(...))
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from imagine_gateway.gateway.errors import QueueCleared

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _QueueItem:
    fn: Callable[[], Awaitable[Any]]
    future: asyncio.Future


class RequestQueue:
    def __init__(self, max_concurrent: int = 3):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self._pending: deque[_QueueItem] = deque()
        self._running = 0
        self._tasks: set[asyncio.Task] = set()

    @property
    def running(self) -> int:
        return self._running

    @property
    def queued(self) -> int:
        return len(self._pending)

    async def add(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Submit work and wait for its result (or its exception)."""
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending.append(_QueueItem(fn=fn, future=future))
        self._dispatch()
        return await future

    def _dispatch(self) -> None:
        while self._running < self.max_concurrent and self._pending:
            item = self._pending.popleft()
            if item.future.done():
                # waiter was cancelled while queued
                continue
            self._running += 1
            task = asyncio.ensure_future(self._run(item))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, item: _QueueItem) -> None:
        try:
            result = await item.fn()
        except asyncio.CancelledError:
            if not item.future.done():
                item.future.cancel()
            raise
        except Exception as e:
            if not item.future.done():
                item.future.set_exception(e)
        else:
            if not item.future.done():
                item.future.set_result(result)
        finally:
            self._running -= 1
            self._dispatch()

    def clear(self) -> int:
        """Reject every queued (not yet started) task with QueueCleared."""
        dropped = 0
        while self._pending:
            item = self._pending.popleft()
            if not item.future.done():
                item.future.set_exception(QueueCleared())
                dropped += 1
        if dropped:
            logger.info("Cleared %d queued requests", dropped)
        return dropped

    def get_status(self) -> dict[str, int]:
        return {
            "queued": self.queued,
            "running": self.running,
            "max_concurrent": self.max_concurrent,
        }
