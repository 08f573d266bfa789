"""Per-card countdown for the speed round."""

import asyncio
import logging
from typing import Callable

from .config import SPEED_ROUND_DURATION_MS, TIMER_TICK_MS

logger = logging.getLogger(__name__)


class SpeedRoundTimer:
    """A single-use countdown bound to one card.

    `tick()` advances the clock. When a running asyncio loop is available,
    `start()` drives ticks from a background task; otherwise the owner ticks
    it by hand. `on_expire` runs at most once, synchronously, when the
    remaining time reaches zero.
    """

    def __init__(self, on_expire: Callable[[], None] | None = None,
                 duration_ms: int = SPEED_ROUND_DURATION_MS, tick_ms: int = TIMER_TICK_MS):
        self.duration_ms = duration_ms
        self.tick_ms = tick_ms
        self.remaining_ms = duration_ms
        self.on_expire = on_expire
        self.cancelled = False
        self.expired = False
        self._task: asyncio.Task | None = None

    @property
    def seconds_remaining(self) -> float:
        return self.remaining_ms / 1000

    @property
    def is_running(self) -> bool:
        return not self.cancelled and not self.expired

    def start(self) -> bool:
        """Start ticking on the running event loop. Returns False if there is none."""
        if self._task is not None or not self.is_running:
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False
        self._task = loop.create_task(self._run())
        return True

    async def _run(self) -> None:
        while self.is_running:
            await asyncio.sleep(self.tick_ms / 1000)
            self.tick()

    def tick(self, elapsed_ms: int = None) -> None:
        if not self.is_running:
            return
        step = self.tick_ms if elapsed_ms is None else elapsed_ms
        self.remaining_ms = max(0, self.remaining_ms - step)
        if self.remaining_ms == 0:
            self.expired = True
            logger.info("Speed round timer expired")
            if self.on_expire:
                self.on_expire()

    def cancel(self) -> None:
        """Stop the countdown. Safe to call any number of times."""
        if self.cancelled:
            return
        self.cancelled = True
        # An expired timer's task is finishing on its own
        if self._task is not None and not self._task.done() and not self.expired:
            self._task.cancel()
