"""
Cancellable debounce timer.

Each arm() replaces the pending wait, so only the last of a burst of
signals fires the callback. Once the delay elapses the callback task is
detached from the timer: cancel() stops pending waits but never an
already-dispatched callback, which runs to completion.

Example:
    >>> timer = DebounceTimer(save)
    >>> timer.arm(5.0)
    >>> timer.arm(5.0)   # restarts the 5 second wait
    >>> await timer.wait_idle()
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class DebounceTimer:
    """
    Scoped debounce handle exposing arm(delay) / cancel().

    Must be armed from inside a running event loop.
    """

    def __init__(self, callback: Callable[[], Awaitable[None]], name: str = "debounce") -> None:
        """
        Args:
            callback: Coroutine function run when the delay elapses
            name: Label used in logs and task names
        """
        self._callback = callback
        self.name = name
        self._pending: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def armed(self) -> bool:
        """True while a wait is pending (not yet dispatched)."""
        return self._pending is not None and not self._pending.done()

    @property
    def in_flight(self) -> int:
        """Number of dispatched callbacks still running."""
        return sum(1 for task in self._tasks if task is not self._pending and not task.done())

    def arm(self, delay: float) -> None:
        """
        Start (or restart) the wait.

        Raises:
            ValueError: If delay is negative
            RuntimeError: If no event loop is running
        """
        if delay < 0:
            raise ValueError("delay must be non-negative")

        self.cancel()
        task = asyncio.get_running_loop().create_task(self._run(delay), name=self.name)
        self._pending = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("%s timer armed for %.2fs", self.name, delay)

    def cancel(self) -> bool:
        """
        Cancel the pending wait, if any.

        Returns:
            True if a pending wait was cancelled
        """
        task, self._pending = self._pending, None
        if task is None or task.done():
            return False
        task.cancel()
        logger.debug("%s timer cancelled", self.name)
        return True

    async def _run(self, delay: float) -> None:
        await asyncio.sleep(delay)

        # Detach: from here on cancel() leaves this task alone
        if self._pending is asyncio.current_task():
            self._pending = None

        try:
            await self._callback()
        except Exception:
            logger.exception("%s callback failed", self.name)

    async def wait_idle(self) -> None:
        """Wait until no wait is pending and every dispatched callback finished."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)


__all__ = ["DebounceTimer"]
