"""Tools for MCP servers configured on the Letta server."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from letta_mcp.core.client import LettaAPIError
from letta_mcp.core.errors import ToolNotFound, UpstreamError, api_error
from letta_mcp.registry.schema import ToolDefinition
from letta_mcp.tools.base import (
    as_list,
    list_field,
    optional_int,
    optional_string,
    page_slice,
    quote,
    require_string,
    text_response,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def server_names(servers: Any) -> List[str]:
    """Names from a servers listing: a name-keyed mapping, or a list of configs."""
    if isinstance(servers, dict):
        return list(servers)
    names = []
    for item in as_list(servers):
        if isinstance(item, dict):
            name = item.get("server_name") or item.get("name")
            if name:
                names.append(name)
        elif isinstance(item, str):
            names.append(item)
    return names


async def list_mcp_servers(server, args: Dict[str, Any]) -> Dict[str, Any]:
    try:
        response = await server.api.get("/tools/mcp/servers")
    except LettaAPIError as exc:
        raise api_error(exc, "Failed to list MCP servers") from exc

    servers = response.data if response.data is not None else {}
    return text_response({"server_count": len(server_names(servers)), "servers": servers})


async def list_mcp_tools_by_server(server, args: Dict[str, Any]) -> Dict[str, Any]:
    server_name = require_string(args, "mcp_server_name")
    text_filter = optional_string(args, "filter")
    page = max(optional_int(args, "page", 1), 1)
    page_size = min(max(optional_int(args, "pageSize", DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)

    try:
        response = await server.api.get(
            f"/tools/mcp/servers/{quote(server_name)}/tools",
            timeout=server.config.letta.mcp_tool_list_timeout,
        )
    except LettaAPIError as exc:
        raise api_error(
            exc,
            "Error executing list_mcp_tools_by_server",
            not_found=f"MCP Server not found: {server_name}",
        ) from exc

    tools = as_list(response.data)
    if text_filter:
        needle = text_filter.lower()
        tools = [
            t for t in tools
            if needle in (t.get("name") or "").lower() or needle in (t.get("description") or "").lower()
        ]

    page_data = page_slice(tools, page, page_size)
    pagination = page_data["pagination"]
    pagination["totalTools"] = pagination.pop("total")
    return text_response({
        "mcp_server_name": server_name,
        "pagination": pagination,
        "tool_count": len(page_data["items"]),
        "tools": page_data["items"],
    })


async def find_tool_server(server, tool_name: str) -> str:
    """
    Name of the first configured MCP server that offers ``tool_name``.

    Servers are queried in listing order. One that fails to list its tools
    is logged and skipped.
    """
    try:
        response = await server.api.get("/tools/mcp/servers")
    except LettaAPIError as exc:
        raise api_error(exc, "Failed to list MCP servers") from exc

    if not isinstance(response.data, (dict, list)):
        raise UpstreamError("Failed to list MCP servers or invalid response format.")

    for name in server_names(response.data):
        logger.info("Checking MCP server %s for %s", name, tool_name)
        try:
            tools_response = await server.api.get(f"/tools/mcp/servers/{quote(name)}/tools")
        except LettaAPIError as exc:
            logger.info("Could not list tools for server %s: %s", name, exc)
            continue
        if any(isinstance(t, dict) and t.get("name") == tool_name for t in as_list(tools_response.data)):
            logger.info("Found tool %r on server %r", tool_name, name)
            return name

    raise ToolNotFound(f"Could not find any MCP server providing the tool named '{tool_name}'.")


async def add_mcp_tool_to_letta(server, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Find an MCP tool by name, register it with Letta and attach it to an agent.

    Registration is kept even if the attach step fails; the result then
    reports ``attached: false`` with the error and is flagged ``isError``.
    """
    tool_name = require_string(args, "tool_name")
    agent_id = require_string(args, "agent_id")

    mcp_server_name = await find_tool_server(server, tool_name)

    try:
        registered = await server.api.post(
            f"/tools/mcp/servers/{quote(mcp_server_name)}/{quote(tool_name)}", json={}
        )
    except LettaAPIError as exc:
        raise api_error(exc, f"Failed to register MCP tool {mcp_server_name}/{tool_name}") from exc

    data = registered.data if isinstance(registered.data, dict) else {}
    letta_tool_id = data.get("id")
    if not letta_tool_id:
        raise UpstreamError(
            "Registration API call succeeded but did not return the expected tool ID. "
            f"Response: {json.dumps(registered.data)}"
        )
    letta_tool_name = data.get("name") or tool_name
    logger.info("Registered %s/%s as %s", mcp_server_name, tool_name, letta_tool_id)

    attached = False
    error: Optional[Any] = None
    try:
        attach_response = await server.api.patch(
            f"/agents/{quote(agent_id)}/tools/attach/{quote(letta_tool_id)}", json={}
        )
    except LettaAPIError as exc:
        error = exc.data if exc.data is not None else str(exc)
        logger.error("Failed to attach tool %s to agent %s: %s", letta_tool_id, agent_id, error)
    else:
        agent_tools = list_field(attach_response.data, "tools")
        attached = any(isinstance(t, dict) and t.get("id") == letta_tool_id for t in agent_tools)
        if not attached:
            error = (
                f"Attachment API call succeeded, but tool {letta_tool_id} was not found "
                "in agent's tools list afterwards."
            )
            logger.warning(error)

    payload: Dict[str, Any] = {
        "letta_tool_id": letta_tool_id,
        "letta_tool_name": letta_tool_name,
        "agent_id": agent_id,
        "attached": attached,
        "mcp_server_name": mcp_server_name,
        "mcp_tool_name": tool_name,
    }
    if error is not None:
        payload["error"] = error
    return text_response(payload, is_error=not attached)


TOOLS = [
    ToolDefinition(
        name="list_mcp_servers",
        title="List MCP Servers",
        description=(
            "List all configured MCP servers on the Letta server. Use with list_mcp_tools_by_server "
            "to explore available tools from each server."
        ),
        input_schema={"type": "object", "properties": {}, "required": []},
        read_only=True,
        handler=list_mcp_servers,
    ),
    ToolDefinition(
        name="list_mcp_tools_by_server",
        title="List MCP Server Tools",
        description=(
            "List all available tools for a specific MCP server. Use list_mcp_servers first to see "
            "available servers, then add_mcp_tool_to_letta to import tools into Letta."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "mcp_server_name": {"type": "string", "description": "The name of the MCP server to list tools for"},
                "filter": {
                    "type": "string",
                    "description": "Optional filter to search for specific tools by name or description",
                },
                "page": {"type": "number", "description": "Page number for pagination (starts at 1)"},
                "pageSize": {"type": "number", "description": "Number of tools per page (1-100, default: 10)"},
            },
            "required": ["mcp_server_name"],
        },
        read_only=True,
        handler=list_mcp_tools_by_server,
    ),
    ToolDefinition(
        name="add_mcp_tool_to_letta",
        title="Add MCP Tool to Letta",
        description=(
            "Registers a tool from a connected MCP server as a native Letta tool and attaches it to "
            "an agent. Use list_mcp_servers and list_mcp_tools_by_server to discover tools."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "tool_name": {"type": "string", "description": "The name of the MCP tool to find, register, and attach."},
                "agent_id": {
                    "type": "string",
                    "description": "The ID of the agent to attach the newly registered tool to.",
                },
            },
            "required": ["tool_name", "agent_id"],
        },
        read_only=False,
        handler=add_mcp_tool_to_letta,
    ),
]
