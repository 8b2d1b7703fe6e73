"""Countdown Engine - one recurring tick task per running timer.

The engine only schedules; what a tick does is up to the on_tick callback
(the TimerRegistry decrements, persists and completes). The callback returns
True to keep ticking, False to stop.

Tasks are keyed by timer id and owned by the engine instance, so tearing
down an engine cancels everything it started.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 1.0

TickCallback = Callable[[str], Awaitable[bool]]
SleepFunc = Callable[[float], Awaitable[None]]


class CountdownEngine:
    """Schedules per-timer recurring ticks on the running event loop."""

    def __init__(
        self,
        interval: float = DEFAULT_TICK_INTERVAL,
        sleep: SleepFunc | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            interval: Seconds between ticks.
            sleep: Awaitable sleep used between ticks (tests swap in a
                manual clock). Defaults to asyncio.sleep.
        """
        self._interval = interval
        self._sleep = sleep or asyncio.sleep
        self._tasks: dict[str, asyncio.Task] = {}
        # Tasks currently inside on_tick; never cancelled mid-tick
        self._busy: set[asyncio.Task] = set()
        self._closed = False

    @property
    def interval(self) -> float:
        return self._interval

    def start(self, timer_id: str, on_tick: TickCallback) -> bool:
        """Start ticking a timer.

        Does nothing if the timer is already ticking, so a double start
        never produces two decrements per interval.

        Args:
            timer_id: Timer identifier.
            on_tick: Awaited once per interval with the timer id.

        Returns:
            True if a new tick task was created.
        """
        if self._closed:
            logger.warning("Countdown engine closed, not starting '%s'", timer_id)
            return False
        if timer_id in self._tasks:
            return False

        task = asyncio.get_running_loop().create_task(
            self._run(timer_id, on_tick), name=f"countdown-{timer_id}"
        )
        self._tasks[timer_id] = task
        logger.debug("Countdown '%s' started", timer_id)
        return True

    async def _run(self, timer_id: str, on_tick: TickCallback) -> None:
        """Tick loop. Runs until on_tick returns False or the timer is stopped."""
        me = asyncio.current_task()
        try:
            while True:
                await self._sleep(self._interval)
                if self._tasks.get(timer_id) is not me:
                    return

                self._busy.add(me)
                try:
                    keep_ticking = await on_tick(timer_id)
                except Exception as e:
                    logger.error("Countdown '%s' tick error: %s", timer_id, e)
                    keep_ticking = True
                finally:
                    self._busy.discard(me)

                if not keep_ticking or self._tasks.get(timer_id) is not me:
                    return
        finally:
            if self._tasks.get(timer_id) is me:
                del self._tasks[timer_id]

    def stop(self, timer_id: str) -> bool:
        """Stop ticking a timer.

        A sleeping task is cancelled before this returns, so no further
        tick fires. A task that is in the middle of a tick (including a
        tick that stops its own timer) is only deregistered: it finishes
        that tick, persisting included, and then exits.

        Args:
            timer_id: Timer identifier.

        Returns:
            True if the timer was ticking.
        """
        task = self._tasks.pop(timer_id, None)
        if task is None:
            return False
        if task not in self._busy:
            task.cancel()
        logger.debug("Countdown '%s' stopped", timer_id)
        return True

    def is_ticking(self, timer_id: str) -> bool:
        return timer_id in self._tasks

    def active_ids(self) -> list[str]:
        """Get ids of all ticking timers."""
        return list(self._tasks)

    def stop_all(self) -> None:
        """Stop every timer and refuse new ones (call on shutdown)."""
        self._closed = True
        for task in self._tasks.values():
            if task not in self._busy:
                task.cancel()
        count = len(self._tasks)
        self._tasks.clear()
        if count:
            logger.info("Stopped %d countdown(s)", count)

    async def aclose(self) -> None:
        """Stop every timer and wait for the tick tasks to finish."""
        current = asyncio.current_task()
        tasks = [t for t in self._tasks.values() if t is not current]
        self.stop_all()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
