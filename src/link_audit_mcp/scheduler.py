"""Concurrency gate bounding in-flight outbound requests."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, TypeVar

from link_audit_mcp.admin.service import get_config

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConcurrencyGate:
    """Run coroutines with at most ``limit`` of them in flight.

    Callers beyond the limit wait in a FIFO queue and are admitted as running
    tasks finish. A task that fails still frees its slot. The gate keeps
    counters for observability; ``high_water_mark`` is the largest number of
    tasks ever running at once.

    Futures are created on the running loop at wait time, so one gate can
    serve successive event loops as long as none is left waiting.
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError(f"Concurrency limit must be at least 1, got {limit}")
        self._limit = limit
        self._waiters: deque[asyncio.Future[None]] = deque()
        self.active = 0
        self.submitted = 0
        self.completed = 0
        self.high_water_mark = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def queued(self) -> int:
        return len(self._waiters)

    def _occupy(self) -> None:
        self.active += 1
        if self.active > self.high_water_mark:
            self.high_water_mark = self.active

    def _wake_waiters(self) -> None:
        while self._waiters and self.active < self._limit:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            self._occupy()
            waiter.set_result(None)

    def _release(self) -> None:
        self.active -= 1
        self._wake_waiters()

    async def _acquire(self) -> None:
        if self.active < self._limit and not self._waiters:
            self._occupy()
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Slot was granted just before cancellation; hand it on
                self._release()
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            raise

    async def run(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Await fn(*args, **kwargs) once a slot is free.

        Args:
            fn: Coroutine function to run
            *args: Positional arguments for fn
            **kwargs: Keyword arguments for fn

        Returns:
            Whatever fn returns; its exceptions propagate unchanged
        """
        self.submitted += 1
        await self._acquire()
        try:
            return await fn(*args, **kwargs)
        finally:
            self.completed += 1
            self._release()

    def resize(self, limit: int) -> None:
        """Change the limit. Running tasks are never interrupted."""
        if limit < 1:
            raise ValueError(f"Concurrency limit must be at least 1, got {limit}")
        logger.info(f"Concurrency gate resized from {self._limit} to {limit}")
        self._limit = limit
        self._wake_waiters()

    def stats(self) -> dict[str, int]:
        return {
            "limit": self._limit,
            "active": self.active,
            "queued": self.queued,
            "submitted": self.submitted,
            "completed": self.completed,
            "high_water_mark": self.high_water_mark,
        }


# Process-wide gate shared by all single-page audits
_link_gate: ConcurrencyGate | None = None


def get_link_gate() -> ConcurrencyGate:
    """Get the shared link-check gate, creating it from config on first use."""
    global _link_gate
    if _link_gate is None:
        _link_gate = ConcurrencyGate(get_config("link_concurrency"))
    return _link_gate
