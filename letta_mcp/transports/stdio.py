"""Line-delimited JSON-RPC over stdin and stdout."""

from __future__ import annotations

import logging

from mcp.server.stdio import stdio_server

logger = logging.getLogger(__name__)


async def run_stdio(server) -> None:
    async with stdio_server() as (read_stream, write_stream):
        logger.info("Serving MCP on stdio")
        await server.mcp.run(read_stream, write_stream, server.initialization_options())
