"""Periodic liveness check bound to one client."""

import asyncio
import logging
from typing import Awaitable, Callable


class HeartbeatMonitor:
    """Recurring timer task that calls ``on_tick`` while enabled.

    The task is started by :meth:`enable` and ends on its own at the first
    tick after :meth:`disable`. :meth:`stop` ends it for good.
    """

    def __init__(
        self,
        interval: float,
        on_tick: Callable[[], Awaitable[None]],
        logger: logging.Logger | logging.LoggerAdapter,
    ) -> None:
        """Initialize heartbeat monitor.

        Parameters
        ----------
        interval : float
            Seconds between ticks
        on_tick : Callable[[], Awaitable[None]]
            Coroutine function run on each enabled tick
        logger : logging.Logger | logging.LoggerAdapter
            Logger for tick failures
        """
        self.interval = interval
        self._on_tick = on_tick
        self._logger = logger
        self._enabled = False
        self._stopped = False
        self._task: asyncio.Task | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def enable(self) -> None:
        """Enable ticking, starting the timer task if needed."""
        if self._stopped:
            return

        self._enabled = True
        if not self.running:
            self._task = asyncio.create_task(self._run(), name="avtelnet-heartbeat")

    def disable(self) -> None:
        """Disable ticking."""
        self._enabled = False

    async def stop(self) -> None:
        """Stop the timer task permanently."""
        self._stopped = True
        self._enabled = False

        task = self._task
        self._task = None
        if task is None or task is asyncio.current_task():
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)

            # a disable may have landed while sleeping
            if not self._enabled:
                break

            try:
                await self._on_tick()
            except Exception:
                self._logger.exception("Heartbeat tick failed")
