"""WebSocket Connection Manager - Real-time timer state broadcast.

Manages WebSocket connections and pushes the full timer state to every
client after each registry mutation.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """WebSocket event types."""

    # Server -> Client events
    TIMERS_STATE = "timers_state"
    TIMERS_CHANGED = "timers_changed"


@dataclass
class WebSocketEvent:
    """A WebSocket event to broadcast."""

    type: EventType
    data: dict[str, Any]

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps({"type": self.type.value, "data": self.data})


@dataclass
class ConnectionManager:
    """Manages WebSocket connections and broadcasts."""

    active_connections: list[WebSocket] = field(default_factory=list)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a new WebSocket connection.

        Args:
            websocket: The WebSocket connection to accept.
        """
        await websocket.accept()
        async with self._lock:
            self.active_connections.append(websocket)
        logger.info(
            "WebSocket client connected. Total: %d", len(self.active_connections)
        )

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a WebSocket connection.

        Args:
            websocket: The WebSocket connection to remove.
        """
        async with self._lock:
            if websocket in self.active_connections:
                self.active_connections.remove(websocket)
        logger.info(
            "WebSocket client disconnected. Total: %d", len(self.active_connections)
        )

    async def broadcast(self, event: WebSocketEvent) -> None:
        """Broadcast an event to all connected clients.

        Clients that fail to receive are dropped.

        Args:
            event: The event to broadcast.
        """
        if not self.active_connections:
            return

        message = event.to_json()
        disconnected: list[WebSocket] = []

        async with self._lock:
            for connection in self.active_connections:
                try:
                    await connection.send_text(message)
                except Exception as e:
                    logger.warning("Failed to send to client: %s", e)
                    disconnected.append(connection)

            for conn in disconnected:
                if conn in self.active_connections:
                    self.active_connections.remove(conn)

    async def send_personal(self, websocket: WebSocket, event: WebSocketEvent) -> None:
        """Send an event to a specific client.

        Args:
            websocket: The target WebSocket connection.
            event: The event to send.
        """
        try:
            await websocket.send_text(event.to_json())
        except Exception as e:
            logger.warning("Failed to send personal message: %s", e)

    @property
    def connection_count(self) -> int:
        """Get number of active connections."""
        return len(self.active_connections)


# Global connection manager instance
_manager: ConnectionManager | None = None
# Server's event loop (set during startup)
_server_loop: asyncio.AbstractEventLoop | None = None


def get_connection_manager() -> ConnectionManager:
    """Get the global connection manager.

    Returns:
        The ConnectionManager singleton.
    """
    global _manager
    if _manager is None:
        _manager = ConnectionManager()
    return _manager


def set_server_loop(loop: asyncio.AbstractEventLoop | None) -> None:
    """Store the server's event loop for broadcasting from sync callbacks.

    Called during server startup (and with None on shutdown).

    Args:
        loop: The asyncio event loop running the FastAPI server.
    """
    global _server_loop
    _server_loop = loop
    logger.debug("Server event loop registered for WebSocket broadcasting")


def broadcast_sync(event: WebSocketEvent) -> None:
    """Broadcast an event from synchronous code.

    Registry callbacks are plain functions; this schedules the async
    broadcast on the server loop without waiting for it.

    Args:
        event: The event to broadcast.
    """
    manager = get_connection_manager()

    if _server_loop is None:
        logger.debug("WebSocket broadcast skipped: server loop not initialized")
        return

    if not _server_loop.is_running():
        logger.debug("WebSocket broadcast skipped: server loop not running")
        return

    try:
        future = asyncio.run_coroutine_threadsafe(
            manager.broadcast(event), _server_loop
        )
        future.add_done_callback(_broadcast_error_handler)
    except Exception as e:
        logger.warning("Failed to schedule WebSocket broadcast: %s", e)


def _broadcast_error_handler(future) -> None:
    """Handle errors from async broadcast operations."""
    try:
        future.result()
    except Exception as e:
        logger.warning("WebSocket broadcast failed: %s", e)


def broadcast_timers_changed(state: dict[str, Any]) -> None:
    """Broadcast the timer state after a mutation.

    Registered as a TimerRegistry callback.

    Args:
        state: TimerRegistry.snapshot() output.
    """
    broadcast_sync(WebSocketEvent(type=EventType.TIMERS_CHANGED, data=state))


async def send_timers_state(websocket: WebSocket, state: dict[str, Any]) -> None:
    """Send the current timer state to a newly connected client.

    Args:
        websocket: The client connection.
        state: TimerRegistry.snapshot() output.
    """
    manager = get_connection_manager()
    event = WebSocketEvent(type=EventType.TIMERS_STATE, data=state)
    await manager.send_personal(websocket, event)
