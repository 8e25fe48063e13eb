"""
WebSocket endpoint for practitioner clients.

    GET /ws/practitioners/{practitioner_id}

The connection is registered for the lifetime of the socket. Clients only
receive; incoming text frames other than ``ping`` are ignored.
"""

from typing import Optional
from uuid import uuid4

from aiohttp import WSMsgType, web

from config import settings
from utils.logging_config import setup_logging

from .registry import ConnectionRegistry, get_connection_registry

logger = setup_logging(
    name=__name__, log_level=settings.log_level, log_file="realtime.log", log_dir="logs"
)

REGISTRY_KEY = web.AppKey("connection_registry", ConnectionRegistry)

HEARTBEAT_SECONDS = 30.0


async def practitioner_socket(request: web.Request) -> web.WebSocketResponse:
    """Hold a practitioner's WebSocket open and track it in the registry."""
    practitioner_id = request.match_info["practitioner_id"]
    registry = request.app[REGISTRY_KEY]

    ws = web.WebSocketResponse(heartbeat=HEARTBEAT_SECONDS)
    await ws.prepare(request)

    connection_id = uuid4().hex
    registry.add(practitioner_id, connection_id, ws)
    logger.info(f"Practitioner {practitioner_id} connected ({connection_id})")

    try:
        async for msg in ws:
            if msg.type == WSMsgType.TEXT and msg.data == "ping":
                await ws.send_str("pong")
            elif msg.type == WSMsgType.ERROR:
                logger.warning(f"Connection {connection_id} closed with error: {ws.exception()}")
    finally:
        registry.remove(practitioner_id, connection_id)
        logger.info(f"Practitioner {practitioner_id} disconnected ({connection_id})")

    return ws


async def health_check(request: web.Request) -> web.Response:
    registry = request.app[REGISTRY_KEY]
    return web.json_response({"status": "ok", "connections": registry.connection_count()})


def create_realtime_app(registry: Optional[ConnectionRegistry] = None) -> web.Application:
    """Build the aiohttp application serving practitioner sockets."""
    app = web.Application()
    app[REGISTRY_KEY] = registry if registry is not None else get_connection_registry()
    app.router.add_get("/ws/practitioners/{practitioner_id}", practitioner_socket)
    app.router.add_get("/health", health_check)
    return app
