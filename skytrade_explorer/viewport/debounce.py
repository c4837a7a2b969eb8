"""Collapse bursts of viewport events into one call after a quiet period."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """Schedules ``callback(value)`` once no new value arrived for ``delay`` seconds.

    A newer trigger replaces the pending one instead of queueing behind it.
    """

    def __init__(self, callback: Callable[[Any], Awaitable[None]], delay: float = 0.3) -> None:
        self.callback = callback
        self.delay = delay
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def in_flight(self) -> Optional[asyncio.Task]:
        if self._task is not None and not self._task.done():
            return self._task
        return None

    def trigger(self, value: Any) -> None:
        if self._handle is not None:
            self._handle.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire, value)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def wait(self) -> None:
        """Wait for the pending trigger (if any) and the call it starts."""

        while self._handle is not None:
            await asyncio.sleep(self.delay / 4 or 0.001)
        task = self.in_flight
        if task is not None:
            await task

    def _fire(self, value: Any) -> None:
        self._handle = None
        self._task = asyncio.get_running_loop().create_task(self._run(value))

    async def _run(self, value: Any) -> None:
        try:
            await self.callback(value)
        except Exception:
            logger.exception("Debounced call failed")
