"""
Cancellable one-shot timers.

Each TimerSlot holds at most one pending timer. Arming a slot cancels
whatever was pending in it, so a slot always represents "the most recent
arm". Timers are asyncio tasks sleeping on the session's event loop, which
keeps timer firings serialized with transcript handling and playback
callbacks on that same loop.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

from turnwise.logging_config import get_logger, log_exception

__all__ = ["TimerSlot"]

logger = get_logger("timers")


class TimerSlot:
    """A named slot owning zero or one pending timer."""

    def __init__(self, name: str):
        self.name = name
        self._task: Optional[asyncio.Task] = None
        self._fired_count = 0

    @property
    def pending(self) -> bool:
        """True while a timer is armed and has not fired or been cancelled."""
        return self._task is not None and not self._task.done()

    @property
    def fired_count(self) -> int:
        """Number of times a timer in this slot has fired."""
        return self._fired_count

    def arm(self, delay_seconds: float, callback: Callable[[], Any]) -> asyncio.Task:
        """Schedule callback after delay_seconds, replacing any pending timer.

        Must be called from a running event loop.

        Returns:
            The asyncio task backing the timer (an opaque cancellable handle)
        """
        self.cancel()
        task = asyncio.get_running_loop().create_task(
            self._run(delay_seconds, callback),
            name=f"turnwise-timer-{self.name}",
        )
        self._task = task
        logger.debug(f"Timer '{self.name}' armed for {delay_seconds:.3f}s")
        return task

    def cancel(self) -> bool:
        """Cancel the pending timer, if any. Safe to call repeatedly.

        Returns:
            True if a pending timer was cancelled
        """
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        task.cancel()
        logger.debug(f"Timer '{self.name}' cancelled")
        return True

    async def _run(self, delay_seconds: float, callback: Callable[[], Any]) -> None:
        try:
            await asyncio.sleep(delay_seconds)
        except asyncio.CancelledError:
            return

        # Release the slot first so the callback can re-arm or cancel freely.
        if self._task is asyncio.current_task():
            self._task = None
        self._fired_count += 1
        logger.debug(f"Timer '{self.name}' fired")

        try:
            result = callback()
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            log_exception(logger, f"Timer '{self.name}' callback failed", e)
