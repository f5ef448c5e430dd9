"""Server-sent events transport: GET /sse opens a session, POST /message carries requests."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

import uvicorn
from mcp.server.sse import SseServerTransport
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from letta_mcp import __version__

logger = logging.getLogger(__name__)

MESSAGE_PATH = "/message"


def health_endpoint(server, transport: str):
    started = time.monotonic()

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({
            "status": "healthy",
            "server": server.config.server.name,
            "version": __version__,
            "transport": transport,
            "uptime": round(time.monotonic() - started, 3),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    return health


def build_sse_app(server) -> Starlette:
    sse = SseServerTransport(MESSAGE_PATH)

    async def handle_sse(request: Request):
        async with sse.connect_sse(request.scope, request.receive, request._send) as streams:
            await server.mcp.run(streams[0], streams[1], server.initialization_options())

    return Starlette(routes=[
        Route("/sse", handle_sse),
        Route("/health", health_endpoint(server, "sse")),
        Mount(MESSAGE_PATH, app=sse.handle_post_message),
    ])


async def run_sse(server) -> None:
    host, port = server.config.server.host, server.config.server.port
    logger.info("Serving MCP over SSE at http://%s:%d/sse", host, port)
    config = uvicorn.Config(build_sse_app(server), host=host, port=port, log_level="warning")
    await uvicorn.Server(config).serve()
