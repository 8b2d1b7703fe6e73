"""FastAPI Web Server - Timer Deck backend.

Provides REST endpoints for timer intents and a WebSocket feed of timer
state. Listens only on localhost (127.0.0.1) by default.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from timerdeck.core.countdown import CountdownEngine
from timerdeck.core.registry import TimerRegistry
from timerdeck.core.settings import Settings
from timerdeck.core.store import JsonFileStore, KeyValueStore, MemoryStore
from timerdeck.web.routes import health, timers
from timerdeck.web.websocket.manager import (
    broadcast_timers_changed,
    get_connection_manager,
    send_timers_state,
    set_server_loop,
)

logger = logging.getLogger(__name__)


def create_store(settings: Settings) -> KeyValueStore:
    """Build the store selected by settings."""
    if settings.in_memory:
        logger.info("Using in-memory store (timers will not persist)")
        return MemoryStore()
    logger.info("Using store file %s", settings.data_file)
    return JsonFileStore(settings.data_file)


def create_app(
    settings: Settings | None = None,
    store: KeyValueStore | None = None,
    engine: CountdownEngine | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Runtime settings (defaults if omitted).
        store: Store to use instead of the one settings select.
        engine: Countdown engine to use instead of a default one.

    Returns:
        Configured FastAPI app instance.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler.

        Startup: build the registry, load saved timers before any request
        is served, hook registry changes to the WebSocket broadcast.

        Shutdown: cancel every countdown so nothing ticks against a
        registry that is going away.
        """
        logger.info("Timer Deck starting...")
        set_server_loop(asyncio.get_running_loop())

        registry = TimerRegistry(
            store or create_store(settings),
            engine or CountdownEngine(interval=settings.tick_interval),
        )
        await registry.load()
        registry.register_callback(broadcast_timers_changed)
        app.state.registry = registry

        yield

        registry.unregister_callback(broadcast_timers_changed)
        await registry.close()
        set_server_loop(None)
        logger.info("Timer Deck stopped")

    app = FastAPI(
        title="Timer Deck",
        description="Named, categorized countdown timers",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS - allow localhost only
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"^http://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(timers.router, prefix="/api/timers", tags=["timers"])
    app.include_router(health.router, prefix="/api/health", tags=["health"])

    @app.websocket("/ws/events")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        """WebSocket endpoint for timer state.

        Sends:
        - timers_state: full state right after connecting
        - timers_changed: full state after every mutation
        """
        manager = get_connection_manager()
        await manager.connect(websocket)

        try:
            await send_timers_state(websocket, app.state.registry.snapshot())

            # Intents go through the REST API; the socket is push-only
            while True:
                data = await websocket.receive_json()
                msg_type = data.get("type") if isinstance(data, dict) else None
                logger.warning("WebSocket: Ignoring client message: %s", msg_type)

        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error("WebSocket error: %s", e)
        finally:
            await manager.disconnect(websocket)

    return app


def run_server(settings: Settings) -> None:
    """Run the web server (blocks until interrupted).

    Args:
        settings: Runtime settings (host, port, store, tick interval).
    """
    import uvicorn

    app = create_app(settings)
    logger.info("Starting Timer Deck on http://%s:%d", settings.host, settings.port)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
    )
