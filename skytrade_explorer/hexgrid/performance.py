"""Frame-rate sampling and the resource budgets derived from it."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PerformanceRecommendations:
    max_visible_points: int
    disable_animations: bool
    reduce_detail: bool
    resolution_offset: int


class PerformanceMonitor:
    """Counts rendered frames and turns them into an FPS reading once a second.

    Performance mode is sticky: it switches on below ``enter_fps`` and only
    switches off again above ``exit_fps``.
    """

    def __init__(
        self,
        sample_interval: float = 1.0,
        enter_fps: float = 20.0,
        exit_fps: float = 40.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if enter_fps >= exit_fps:
            raise ValueError("enter_fps must be lower than exit_fps.")
        self.sample_interval = sample_interval
        self.enter_fps = enter_fps
        self.exit_fps = exit_fps
        self.clock = clock
        self.fps = 60
        self.performance_mode = False
        self._frames = 0
        self._window_start = clock()
        self._task: Optional[asyncio.Task] = None

    def record_frame(self, count: int = 1) -> None:
        self._frames += count

    def sample(self, now: Optional[float] = None) -> Optional[int]:
        """Close the current window if a full interval has passed; return the new FPS.

        A window without any recorded frame stays open, so a session with no
        renderer attached keeps its last reading. Once frames resume, the
        whole stalled stretch counts towards the next reading.
        """

        now = self.clock() if now is None else now
        elapsed = now - self._window_start
        if elapsed < self.sample_interval or self._frames == 0:
            return None
        self.fps = round(self._frames / elapsed)
        if self.fps < self.enter_fps and not self.performance_mode:
            self.performance_mode = True
            logger.info("Entering performance mode at %d fps", self.fps)
        elif self.fps > self.exit_fps and self.performance_mode:
            self.performance_mode = False
            logger.info("Leaving performance mode at %d fps", self.fps)
        self._frames = 0
        self._window_start = now
        return self.fps

    def recommendations(self) -> PerformanceRecommendations:
        offset = -1 if self.performance_mode else 0
        if self.fps < 15:
            return PerformanceRecommendations(500, True, True, offset)
        if self.fps < 30:
            return PerformanceRecommendations(2000, False, True, offset)
        return PerformanceRecommendations(5000, False, False, offset)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Sample on a fixed cadence in the running event loop."""

        if self.running:
            return
        self._frames = 0
        self._window_start = self.clock()
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.sample_interval)
            self.sample()
