"""
Pacing

Cancellable delayed task used to pause between feedback and the next question.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional


logger = logging.getLogger("tutor.pacing")


class DelayedTask:
    """Runs a coroutine function after a delay unless cancelled first."""

    def __init__(self, delay_seconds: float, callback: Callable[[], Awaitable[None]], name: str = "delayed"):
        self.delay_seconds = delay_seconds
        self.name = name
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    def start(self) -> "DelayedTask":
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        return self

    async def _run(self) -> None:
        await asyncio.sleep(self.delay_seconds)
        await self._callback()

    def cancel(self) -> bool:
        """Cancel the task if it has not finished. Returns True if it was pending."""
        if self._task is None or self._task.done():
            return False
        self._task.cancel()
        logger.debug(f"Cancelled delayed task '{self.name}'")
        return True

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task is not None and self._task.cancelled()

    async def wait(self) -> None:
        """Wait for the task to finish. A cancelled task returns quietly."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise
