"""Debounced autosave: rapid edits collapse into one write."""

import asyncio
from typing import Awaitable, Callable, Optional


class Debouncer:
    """
    Runs `callback` once, `delay` seconds after the most recent schedule().
    Must be used from inside a running event loop.
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[None]]):
        self.delay = delay
        self.callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self) -> None:
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def flush(self) -> None:
        """Write now instead of waiting for the timer."""
        self.cancel()
        await self.callback()

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        self._task = None
        await self.callback()
