"""Snapshot codec - serialize both timer collections as one record.

Current format, stored under SNAPSHOT_KEY:

    {"version": 1, "timers": [...], "completedTimers": [...]}

Older data kept the two collections under separate keys ("timers" and
"completedTimers") and had no timer ids. decode_legacy() reads that layout
and assigns fresh ids.
"""

import json
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from timerdeck.core.errors import StoreReadError
from timerdeck.core.models import CompletedTimer, Timer, TimerStatus, new_timer_id

SNAPSHOT_KEY = "timerdeck"
LEGACY_TIMERS_KEY = "timers"
LEGACY_COMPLETED_KEY = "completedTimers"
SNAPSHOT_VERSION = 1


class TimerRecord(BaseModel):
    """Stored form of an active timer."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str
    category: str
    duration: int = Field(gt=0)
    remaining: int = Field(ge=0)
    status: TimerStatus = TimerStatus.PAUSED

    def to_timer(self) -> Timer:
        return Timer(
            name=self.name,
            category=self.category,
            duration=self.duration,
            remaining=min(self.remaining, self.duration),
            status=self.status,
            id=self.id or new_timer_id(),
        )


class CompletedRecord(BaseModel):
    """Stored form of a completed timer."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str
    category: str
    duration: int = Field(gt=0)
    status: TimerStatus = TimerStatus.PAUSED
    completed_at: str | None = None

    def to_completed(self) -> CompletedTimer:
        return CompletedTimer(
            name=self.name,
            category=self.category,
            duration=self.duration,
            status=self.status,
            id=self.id or new_timer_id(),
            completed_at=self.completed_at or datetime.now(timezone.utc).isoformat(),
        )


class SnapshotRecord(BaseModel):
    """Stored form of the whole registry."""

    version: int
    timers: list[TimerRecord] = []
    completedTimers: list[CompletedRecord] = []


def build_snapshot(
    timers: list[Timer], completed: list[CompletedTimer]
) -> dict[str, Any]:
    """Build the JSON-ready snapshot dict (order preserved)."""
    return {
        "version": SNAPSHOT_VERSION,
        "timers": [t.to_dict() for t in timers],
        "completedTimers": [c.to_dict() for c in completed],
    }


def encode_snapshot(timers: list[Timer], completed: list[CompletedTimer]) -> str:
    """Serialize both collections to a single JSON string."""
    return json.dumps(build_snapshot(timers, completed))


def decode_snapshot(raw: str) -> tuple[list[Timer], list[CompletedTimer]]:
    """Parse a stored snapshot.

    Args:
        raw: JSON string read from SNAPSHOT_KEY.

    Returns:
        (active timers, completed timers) in stored order.

    Raises:
        StoreReadError: If the data is malformed or of an unknown version.
    """
    try:
        record = SnapshotRecord.model_validate_json(raw)
    except PydanticValidationError as e:
        raise StoreReadError(f"Malformed snapshot: {e}") from e

    if record.version != SNAPSHOT_VERSION:
        raise StoreReadError(f"Unsupported snapshot version: {record.version}")

    return (
        [r.to_timer() for r in record.timers],
        [r.to_completed() for r in record.completedTimers],
    )


def _decode_list(raw: str | None, model: type[BaseModel], key: str) -> list:
    if raw is None:
        return []
    try:
        items = json.loads(raw)
    except json.JSONDecodeError as e:
        raise StoreReadError(f"Malformed '{key}': {e}") from e
    if not isinstance(items, list):
        raise StoreReadError(f"Expected a list under '{key}'")
    try:
        return [model.model_validate(item) for item in items]
    except PydanticValidationError as e:
        raise StoreReadError(f"Malformed '{key}': {e}") from e


def decode_legacy(
    timers_raw: str | None, completed_raw: str | None
) -> tuple[list[Timer], list[CompletedTimer]]:
    """Parse collections stored under the two legacy keys.

    Raises:
        StoreReadError: If either value is malformed.
    """
    timers = _decode_list(timers_raw, TimerRecord, LEGACY_TIMERS_KEY)
    completed = _decode_list(completed_raw, CompletedRecord, LEGACY_COMPLETED_KEY)
    return [r.to_timer() for r in timers], [r.to_completed() for r in completed]
