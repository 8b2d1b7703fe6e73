"""Health API Route.

Endpoints:
- GET /api/health - Liveness plus timer counts
"""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("")
async def health(request: Request) -> dict[str, str | int]:
    """Report liveness, active timer count and ticking timer count."""
    registry = request.app.state.registry
    return {
        "status": "ok",
        "timers": len(registry.timers),
        "completed": len(registry.completed),
        "ticking": len(registry.engine.active_ids()),
    }
