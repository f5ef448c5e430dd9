"""Streamable HTTP transport mounted at /mcp."""

from __future__ import annotations

import contextlib
import logging

import uvicorn
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.applications import Starlette
from starlette.routing import Mount, Route

from letta_mcp.transports.sse import health_endpoint

logger = logging.getLogger(__name__)


def build_http_app(server) -> Starlette:
    session_manager = StreamableHTTPSessionManager(
        app=server.mcp,
        event_store=None,
        json_response=False,
        stateless=True,
    )

    async def handle_mcp(scope, receive, send):
        await session_manager.handle_request(scope, receive, send)

    @contextlib.asynccontextmanager
    async def lifespan(app):
        async with session_manager.run():
            yield

    return Starlette(
        routes=[
            Route("/health", health_endpoint(server, "http")),
            Mount("/mcp", app=handle_mcp),
        ],
        lifespan=lifespan,
    )


async def run_http(server) -> None:
    host, port = server.config.server.host, server.config.server.port
    logger.info("Serving MCP over streamable HTTP at http://%s:%d/mcp", host, port)
    config = uvicorn.Config(build_http_app(server), host=host, port=port, log_level="warning")
    await uvicorn.Server(config).serve()
