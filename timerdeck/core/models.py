"""Timer models.

Timers are plain mutable dataclasses owned by the TimerRegistry. Equality is
identity (eq=False) so that removing a timer from a list only ever removes
that exact object, never another timer that happens to share its fields.
"""

import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from timerdeck.core.errors import ValidationError


class TimerStatus(str, Enum):
    """Timer status."""

    PAUSED = "Paused"
    RUNNING = "Running"


def new_timer_id() -> str:
    """Generate a stable timer identifier."""
    return uuid.uuid4().hex


def parse_duration(value: Any) -> int:
    """Parse a user-supplied duration in seconds.

    Accepts ints and integer strings (form fields arrive as text).

    Args:
        value: Raw duration value.

    Returns:
        Duration in whole seconds.

    Raises:
        ValidationError: If value is empty, non-numeric, or not positive.
    """
    if value is None or value == "":
        raise ValidationError("Please fill in all fields")

    # bool is an int subclass
    if isinstance(value, bool):
        raise ValidationError(f"Duration must be a whole number of seconds: {value!r}")

    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"Duration must be a whole number of seconds: {value!r}")
        seconds = int(value)
    elif isinstance(value, int):
        seconds = value
    elif isinstance(value, str):
        try:
            seconds = int(value.strip())
        except ValueError:
            raise ValidationError(
                f"Duration must be a whole number of seconds: {value!r}"
            ) from None
    else:
        raise ValidationError(f"Duration must be a whole number of seconds: {value!r}")

    if seconds <= 0:
        raise ValidationError(f"Duration must be positive: {seconds}")
    return seconds


@dataclass(eq=False)
class Timer:
    """A countdown timer in the active collection."""

    name: str
    category: str
    duration: int
    remaining: int
    status: TimerStatus = TimerStatus.PAUSED
    id: str = field(default_factory=new_timer_id)

    @property
    def is_running(self) -> bool:
        return self.status is TimerStatus.RUNNING

    @property
    def is_finished(self) -> bool:
        return self.remaining <= 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-ready dict."""
        data = asdict(self)
        data["status"] = self.status.value
        return data

    def copy(self) -> "Timer":
        """Return a detached copy (same id)."""
        return Timer(
            name=self.name,
            category=self.category,
            duration=self.duration,
            remaining=self.remaining,
            status=self.status,
            id=self.id,
        )


@dataclass(eq=False)
class CompletedTimer:
    """Snapshot of a timer moved to the completed collection."""

    name: str
    category: str
    duration: int
    status: TimerStatus
    id: str
    completed_at: str
    remaining: int = 0

    @classmethod
    def from_timer(cls, timer: Timer) -> "CompletedTimer":
        return cls(
            name=timer.name,
            category=timer.category,
            duration=timer.duration,
            status=timer.status,
            id=timer.id,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    def copy(self) -> "CompletedTimer":
        return replace(self)
