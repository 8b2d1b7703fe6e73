"""Timer API Routes - intents and state for the timer list.

Endpoints:
- GET  /api/timers                 - Active and completed timers
- POST /api/timers                 - Add a timer
- GET  /api/timers/completed       - Completed timers
- GET  /api/timers/{id}            - One active timer
- PUT  /api/timers/{id}/status     - Set status (and optionally remaining)
- POST /api/timers/{id}/start      - Start countdown
- POST /api/timers/{id}/pause      - Pause countdown
- POST /api/timers/{id}/reset      - Pause and restore full duration
- POST /api/timers/{id}/complete   - Move a finished timer to completed
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from timerdeck.core.errors import ValidationError
from timerdeck.core.models import Timer, TimerStatus
from timerdeck.core.registry import TimerRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


class TimerCreate(BaseModel):
    """Request body for adding a timer.

    Fields arrive as typed in the form, so duration may be text. Values
    are checked by the registry, not coerced here.
    """

    name: str = ""
    duration: Any = ""
    category: str = ""


class StatusUpdate(BaseModel):
    """Request body for a status change."""

    status: TimerStatus
    remaining: Any = None


class TimerInfo(BaseModel):
    """Active timer."""

    id: str
    name: str
    category: str
    duration: int
    remaining: int
    status: TimerStatus


class CompletedTimerInfo(BaseModel):
    """Completed timer."""

    id: str
    name: str
    category: str
    duration: int
    remaining: int
    status: TimerStatus
    completed_at: str


class TimerList(BaseModel):
    """Both collections."""

    timers: list[TimerInfo]
    completedTimers: list[CompletedTimerInfo]


def _registry(request: Request) -> TimerRegistry:
    return request.app.state.registry


def _to_info(timer: Timer) -> TimerInfo:
    return TimerInfo(**timer.to_dict())


def _not_found(timer_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Timer '{timer_id}' not found")


@router.get("")
async def list_timers(request: Request) -> TimerList:
    """List active and completed timers."""
    state = _registry(request).snapshot()
    return TimerList(timers=state["timers"], completedTimers=state["completedTimers"])


@router.post("", status_code=201)
async def add_timer(body: TimerCreate, request: Request) -> TimerInfo:
    """Add a paused timer.

    Raises:
        HTTPException: 400 if a field is missing or duration is invalid.
    """
    try:
        timer = await _registry(request).add(body.name, body.duration, body.category)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return _to_info(timer)


@router.get("/completed")
async def list_completed(request: Request) -> list[CompletedTimerInfo]:
    """List completed timers, oldest first."""
    return [CompletedTimerInfo(**c.to_dict()) for c in _registry(request).completed]


@router.get("/{timer_id}")
async def get_timer(timer_id: str, request: Request) -> TimerInfo:
    """Get one active timer."""
    timer = _registry(request).get(timer_id)
    if timer is None:
        raise _not_found(timer_id)
    return _to_info(timer)


async def _set_status(
    request: Request, timer_id: str, status: TimerStatus, remaining: Any = None
) -> TimerInfo:
    try:
        timer = await _registry(request).set_status(timer_id, status, remaining)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if timer is None:
        raise _not_found(timer_id)
    return _to_info(timer)


@router.put("/{timer_id}/status")
async def set_status(timer_id: str, body: StatusUpdate, request: Request) -> TimerInfo:
    """Set a timer's status, optionally overriding remaining seconds."""
    return await _set_status(request, timer_id, body.status, body.remaining)


@router.post("/{timer_id}/start")
async def start_timer(timer_id: str, request: Request) -> TimerInfo:
    """Start a timer's countdown."""
    return await _set_status(request, timer_id, TimerStatus.RUNNING)


@router.post("/{timer_id}/pause")
async def pause_timer(timer_id: str, request: Request) -> TimerInfo:
    """Pause a timer's countdown."""
    return await _set_status(request, timer_id, TimerStatus.PAUSED)


@router.post("/{timer_id}/reset")
async def reset_timer(timer_id: str, request: Request) -> TimerInfo:
    """Pause a timer and restore its full duration."""
    timer = await _registry(request).reset(timer_id)
    if timer is None:
        raise _not_found(timer_id)
    return _to_info(timer)


@router.post("/{timer_id}/complete")
async def complete_timer(timer_id: str, request: Request) -> dict[str, Any]:
    """Move a finished timer to the completed list.

    Raises:
        HTTPException: 404 if not active, 400 if time remains.
    """
    registry = _registry(request)
    timer = registry.get(timer_id)
    if timer is None:
        raise _not_found(timer_id)

    try:
        done = await registry.complete(timer)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if done is None:
        raise _not_found(timer_id)
    return done.to_dict()
