"""Transports that carry the MCP session: stdio, SSE and streamable HTTP."""

from letta_mcp.transports.http import run_http
from letta_mcp.transports.sse import run_sse
from letta_mcp.transports.stdio import run_stdio

__all__ = ["run_http", "run_sse", "run_stdio"]
