# chatrelay/main.py

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatrelay.core.config import Settings, settings as default_settings
from chatrelay.core.logging import setup_logging, get_logger
from chatrelay.core.state import RelayState
from chatrelay.api.routes import root, health, metrics, rooms
from chatrelay.api import websocket as websocket_module

# Configure logging first
setup_logging(default_settings.LOG_LEVEL)
logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the relay application.

    The shared room/session state is created when the app starts and torn
    down when it stops; each app instance owns its own.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.relay = RelayState.from_settings(settings)
        logger.info(
            "🚀 Chat relay starting (history=%d, reap_empty_rooms=%s)",
            settings.HISTORY_LIMIT,
            settings.REAP_EMPTY_ROOMS,
        )
        try:
            yield
        finally:
            app.state.relay.close()
            logger.info("Chat relay stopped")

    app = FastAPI(title="Chat Relay", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # REST routes
    app.include_router(root.router)
    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(rooms.router)

    # WebSocket routes
    app.include_router(websocket_module.router)

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("chatrelay.main:app", host=default_settings.HOST, port=default_settings.PORT)


if __name__ == "__main__":
    run()
