"""Scheduled tasks owned by the playback controller.

Every timer-driven effect (progress tick, auto-advance countdown,
hold-to-boost) runs as an asyncio task wrapped in a ScheduledTask, so
the controller can cancel it deterministically on any transition.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class ScheduledTask:
    """A named, restartable, cancellable asyncio task slot."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._task: asyncio.Task | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, factory: Callable[[], Awaitable[None]]) -> None:
        """Cancel whatever is running in this slot and start a new task."""
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(factory(), name=self.name)

    def cancel(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        # From inside the task itself this lands at its next await
        try:
            task.cancel()
        except RuntimeError:  # loop already closed
            return
        logger.debug("Cancelled %s", self.name)


async def every(interval: float, callback: Callable[[], None]) -> None:
    """Call `callback` every `interval` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        callback()


async def after(delay: float, callback: Callable[[], None]) -> None:
    """Call `callback` once after `delay` seconds."""
    await asyncio.sleep(delay)
    callback()
