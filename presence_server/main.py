#!/usr/bin/env python3
"""Presence Node - Server Entry Point"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from . import __version__
from .api import router as api_router
from .config import ServerSettings, load_settings
from .names import NameSource
from .protocol import PresenceSession
from .registry import Clock, PresenceRegistry
from .sweeper import EvictionSweeper
from .websocket_server import PresenceWebSocketServer

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_session(settings: ServerSettings, clock: Optional[Clock] = None) -> PresenceSession:
    """Construct the registry, sweeper and name source from settings."""
    sweeper = EvictionSweeper(
        liveness_window_ms=settings.liveness_window_ms,
        sweep_interval_ms=settings.sweep_interval_ms,
    )
    registry = PresenceRegistry(
        sweeper=sweeper,
        clock=clock,
        default_attribute=settings.default_attribute,
    )
    names = NameSource(
        adjectives_file=settings.adjectives_file,
        nouns_file=settings.nouns_file,
    )
    return PresenceSession(registry, names)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup and shutdown of the server components."""
    settings: ServerSettings = app.state.settings
    logger.info("Presence server initialized")
    logger.info(
        f"Liveness window: {settings.liveness_window_ms}ms, "
        f"sweep interval: {settings.sweep_interval_ms}ms"
    )

    yield

    logger.info(
        f"Presence server shutting down ({len(app.state.session.registry)} clients registered)"
    )


def create_app(
    settings: Optional[ServerSettings] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Build an app that owns its own registry.

    Args:
        settings: Server settings, loaded from PRESENCE_CONFIG_FILE if omitted
        clock: Millisecond clock for the registry (tests inject a fake one)
    """
    settings = settings or load_settings()

    app = FastAPI(
        title="Presence Node Server",
        description="Shared presence registry with change-detection polling",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session = build_session(settings, clock=clock)
    app.state.ws_server = PresenceWebSocketServer()

    app.include_router(api_router)
    app.add_api_websocket_route("/ws", presence_websocket)
    return app


async def presence_websocket(websocket: WebSocket):
    """WebSocket endpoint speaking the polling protocol."""
    session: PresenceSession = websocket.app.state.session
    ws_server: PresenceWebSocketServer = websocket.app.state.ws_server

    await websocket.accept()
    session_id = await ws_server.connect(websocket)

    try:
        async for message in websocket.iter_json():
            if not isinstance(message, dict):
                await websocket.send_json({
                    "type": "error",
                    "error": {"type": "ValueError", "message": "Expected a JSON object"},
                })
                continue
            if message.get("type") == "register":
                # first registration reads the word lists from disk
                reply = await run_in_threadpool(session.handle_message, message)
            else:
                reply = session.handle_message(message)
            await websocket.send_json(reply)

    except WebSocketDisconnect:
        logger.info(f"Session {session_id} disconnected")

    except Exception as e:
        logger.exception(f"Error in WebSocket handler for session {session_id}: {e}")

    finally:
        await ws_server.disconnect(session_id)


def main_cli():
    """CLI entry point."""
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="Presence Node Server")
    parser.add_argument("--config", "-c", help="Path to YAML settings file")
    parser.add_argument("--host", help="Bind host (overrides config)")
    parser.add_argument("--port", "-p", type=int, help="Bind port (overrides config)")
    args = parser.parse_args()

    settings = load_settings(args.config)
    if args.host:
        settings.host = args.host
    if args.port:
        settings.port = args.port

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )

    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main_cli()
