"""Timer Registry - active and completed timers with JSON persistence.

The registry is the only writer of both collections and the only component
that talks to the store. Every mutation saves a full snapshot and then
notifies registered callbacks (the web layer broadcasts them).

Timers are addressed by their generated id; names are display-only and may
repeat. Accessors hand out copies, never the live objects.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from timerdeck.core.countdown import CountdownEngine
from timerdeck.core.errors import ValidationError
from timerdeck.core.models import CompletedTimer, Timer, TimerStatus, parse_duration
from timerdeck.core.snapshot import (
    LEGACY_COMPLETED_KEY,
    LEGACY_TIMERS_KEY,
    SNAPSHOT_KEY,
    build_snapshot,
    decode_legacy,
    decode_snapshot,
    encode_snapshot,
)
from timerdeck.core.store import KeyValueStore

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[dict[str, Any]], None]


def _require_text(value: Any) -> str:
    if value is None or not str(value).strip():
        raise ValidationError("Please fill in all fields")
    return str(value).strip()


def _parse_status(value: TimerStatus | str) -> TimerStatus:
    try:
        return TimerStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown timer status: {value!r}") from None


def _parse_remaining(value: Any, duration: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Remaining must be a whole number of seconds: {value!r}")
    return max(0, min(value, duration))


class TimerRegistry:
    """Owns the active and completed timer collections."""

    def __init__(
        self, store: KeyValueStore, engine: CountdownEngine | None = None
    ) -> None:
        """Initialize the registry.

        Call load() before issuing any intents.

        Args:
            store: Backend for snapshots.
            engine: Countdown engine used for running timers.
        """
        self._store = store
        self._engine = engine or CountdownEngine()
        self._timers: list[Timer] = []
        self._completed: list[CompletedTimer] = []
        self._callbacks: list[SnapshotCallback] = []
        self._save_lock = asyncio.Lock()

    @property
    def engine(self) -> CountdownEngine:
        return self._engine

    @property
    def timers(self) -> list[Timer]:
        """Copies of the active timers, in creation order."""
        return [t.copy() for t in self._timers]

    @property
    def completed(self) -> list[CompletedTimer]:
        """Copies of the completed timers, oldest first."""
        return [c.copy() for c in self._completed]

    def get(self, timer_id: str) -> Timer | None:
        """Get a copy of an active timer, or None."""
        timer = self._find(timer_id)
        return timer.copy() if timer else None

    def snapshot(self) -> dict[str, Any]:
        """Get the JSON-ready state of both collections."""
        return build_snapshot(self._timers, self._completed)

    def _find(self, timer_id: str) -> Timer | None:
        for timer in self._timers:
            if timer.id == timer_id:
                return timer
        return None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Load both collections from the store.

        Missing data means empty collections. Unreadable or malformed data
        is logged and also leaves the collections empty. Timers saved while
        running resume ticking from their stored remaining time.
        """
        try:
            timers, completed = await self._read()
        except Exception as e:
            logger.warning("Failed to load timers: %s", e)
            timers, completed = [], []

        self._timers = timers
        self._completed = completed
        logger.info(
            "Loaded %d timer(s), %d completed", len(self._timers), len(self._completed)
        )

        for timer in self._timers:
            if timer.is_running:
                self._engine.start(timer.id, self.tick)

        self._notify()

    async def _read(self) -> tuple[list[Timer], list[CompletedTimer]]:
        raw = await self._store.get(SNAPSHOT_KEY)
        if raw is not None:
            return decode_snapshot(raw)

        timers_raw = await self._store.get(LEGACY_TIMERS_KEY)
        completed_raw = await self._store.get(LEGACY_COMPLETED_KEY)
        if timers_raw is not None or completed_raw is not None:
            logger.info("Migrating timers from legacy keys")
        return decode_legacy(timers_raw, completed_raw)

    async def _save(self) -> None:
        """Write a snapshot of the current state.

        The snapshot is taken inside the lock, so a write can never replace
        newer data with an older state. Failures are logged only; in-memory
        state is kept as is.
        """
        async with self._save_lock:
            payload = encode_snapshot(self._timers, self._completed)
            try:
                await self._store.set(SNAPSHOT_KEY, payload)
            except Exception as e:
                logger.error("Failed to save timers: %s", e)

    async def _changed(self) -> None:
        await self._save()
        self._notify()

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    async def add(self, name: str, duration: int | str, category: str) -> Timer:
        """Create a paused timer.

        Args:
            name: Display name (names may repeat).
            duration: Seconds, as an int or integer string.
            category: Free-form label.

        Returns:
            Copy of the new timer.

        Raises:
            ValidationError: If a field is empty or duration is invalid.
        """
        name = _require_text(name)
        category = _require_text(category)
        seconds = parse_duration(duration)

        timer = Timer(name=name, category=category, duration=seconds, remaining=seconds)
        self._timers.append(timer)
        logger.info("Timer '%s' added: %ds [%s]", name, seconds, category)

        await self._changed()
        return timer.copy()

    async def set_status(
        self,
        timer_id: str,
        status: TimerStatus | str,
        remaining: int | None = None,
    ) -> Timer | None:
        """Change a timer's status, optionally overriding remaining time.

        Running starts the countdown, Paused stops it before this returns.
        An unknown id is ignored.

        Args:
            timer_id: Timer identifier.
            status: New status.
            remaining: New remaining seconds (clamped to [0, duration]).

        Returns:
            Copy of the updated timer, or None if not found.

        Raises:
            ValidationError: If status or remaining is invalid.
        """
        status = _parse_status(status)
        timer = self._find(timer_id)
        if timer is None:
            logger.debug("set_status ignored, no timer '%s'", timer_id)
            return None

        if remaining is not None:
            timer.remaining = _parse_remaining(remaining, timer.duration)
        timer.status = status

        if status is TimerStatus.RUNNING:
            self._engine.start(timer.id, self.tick)
        else:
            self._engine.stop(timer.id)
        logger.info("Timer '%s' %s (%ds left)", timer.name, status.value, timer.remaining)

        await self._changed()
        return timer.copy()

    async def reset(self, timer_id: str) -> Timer | None:
        """Pause a timer and restore its full duration."""
        timer = self._find(timer_id)
        if timer is None:
            return None
        return await self.set_status(timer_id, TimerStatus.PAUSED, timer.duration)

    async def complete(self, timer: Timer) -> CompletedTimer | None:
        """Move a finished timer to the completed collection.

        Only the active entry with this timer's id is moved. Completing a
        timer that is no longer active does nothing.

        Args:
            timer: The timer to complete (a copy from this registry is fine).

        Returns:
            The completed record, or None if the timer was not active.

        Raises:
            ValidationError: If the timer still has time left.
        """
        live = self._find(timer.id)
        if live is None:
            return None
        if live.remaining > 0:
            raise ValidationError(
                f"Timer '{live.name}' has {live.remaining}s left and cannot be completed"
            )

        self._engine.stop(live.id)
        self._timers.remove(live)
        done = CompletedTimer.from_timer(live)
        self._completed.append(done)
        logger.info("Timer '%s' completed", live.name)

        await self._changed()
        return done.copy()

    async def tick(self, timer_id: str) -> bool:
        """Advance a running timer by one second.

        Used as the countdown engine's tick callback. Reads the live timer
        each time. On reaching zero the timer stops ticking and is
        completed.

        Returns:
            True to keep ticking.
        """
        timer = self._find(timer_id)
        if timer is None or not timer.is_running:
            return False

        new_remaining = timer.remaining - 1
        if new_remaining <= 0:
            timer.remaining = 0
            self._engine.stop(timer_id)
            await self.complete(timer)
            return False

        timer.remaining = new_remaining
        await self._changed()
        return True

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def register_callback(self, callback: SnapshotCallback) -> None:
        """Register a callback for state changes.

        Args:
            callback: Called with snapshot() after every mutation.
        """
        self._callbacks.append(callback)

    def unregister_callback(self, callback: SnapshotCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify(self) -> None:
        if not self._callbacks:
            return
        state = self.snapshot()
        for callback in list(self._callbacks):
            try:
                callback(state)
            except Exception as e:
                logger.error("Timer callback error: %s", e)

    async def close(self) -> None:
        """Stop every countdown (call on shutdown)."""
        await self._engine.aclose()
