"""Attach existing or MCP-provided tools to an agent, and upload custom tools."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from letta_mcp.core.client import LettaAPIError
from letta_mcp.core.errors import ValidationError, api_error
from letta_mcp.registry.schema import ToolDefinition
from letta_mcp.tools.base import (
    as_list,
    created_id,
    list_field,
    optional_string,
    quote,
    require_string,
    string_list,
    text_response,
)
from letta_mcp.tools.mcp_tools import server_names

logger = logging.getLogger(__name__)


async def _mcp_tool_index(server) -> Dict[str, str]:
    """Tool name -> owning MCP server. The first server listing a name wins."""
    index: Dict[str, str] = {}
    try:
        response = await server.api.get("/tools/mcp/servers")
    except LettaAPIError as exc:
        logger.warning("Could not list MCP servers: %s", exc)
        return index

    for name in server_names(response.data):
        try:
            tools_response = await server.api.get(f"/tools/mcp/servers/{quote(name)}/tools")
        except LettaAPIError as exc:
            logger.warning("Could not list tools for MCP server %s: %s", name, exc)
            continue
        for tool in as_list(tools_response.data):
            if isinstance(tool, dict) and tool.get("name") and tool["name"] not in index:
                index[tool["name"]] = name
    return index


async def attach_tool(server, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Attach tools given by ID or by name.

    Names are matched against existing Letta tools first, then against
    tools offered by configured MCP servers, which are registered before
    attaching. Every requested item is reported individually.
    """
    agent_id = require_string(args, "agent_id")
    tool_ids = string_list(args, "tool_ids")
    single = optional_string(args, "tool_id")
    if not tool_ids and single:
        tool_ids = [single]
    tool_names = string_list(args, "tool_names")
    if not tool_ids and not tool_names:
        raise ValidationError("Missing required argument: either tool_id(s) or tool_names must be provided.")

    try:
        agent_response = await server.api.get(f"/agents/{quote(agent_id)}")
        agent_name = (agent_response.data or {}).get("name") or agent_id
    except LettaAPIError as exc:
        logger.warning("Could not fetch agent info for %s: %s", agent_id, exc)
        agent_name = agent_id

    processing: List[Dict[str, Any]] = []
    resolved: Dict[str, str] = {}

    for tool_id in tool_ids:
        try:
            tool_response = await server.api.get(f"/tools/{quote(tool_id)}")
        except LettaAPIError as exc:
            processing.append({
                "input": tool_id,
                "type": "id",
                "success": False,
                "status": "error",
                "error": f"Provided tool ID {tool_id} not found or error fetching: {exc}",
            })
            continue
        name = (tool_response.data or {}).get("name") or f"Unknown ({tool_id})"
        resolved.setdefault(tool_id, name)
        processing.append({
            "input": tool_id, "type": "id", "success": True, "status": "found",
            "details": {"id": tool_id, "name": name},
        })

    if tool_names:
        try:
            letta_tools = as_list((await server.api.get("/tools/")).data)
        except LettaAPIError as exc:
            logger.warning("Could not list existing Letta tools: %s", exc)
            letta_tools = []
        by_name = {t.get("name"): t.get("id") for t in letta_tools if isinstance(t, dict)}
        mcp_index = await _mcp_tool_index(server)

        for name in tool_names:
            entry: Dict[str, Any] = {"input": name, "type": "name"}
            if name in resolved.values():
                entry.update(success=True, status="found_by_id_earlier")
            elif by_name.get(name):
                resolved.setdefault(by_name[name], name)
                entry.update(success=True, status="found_letta", details={"id": by_name[name], "name": name})
            elif name in mcp_index:
                mcp_server = mcp_index[name]
                try:
                    registered = await server.api.post(
                        f"/tools/mcp/servers/{quote(mcp_server)}/{quote(name)}", json={}
                    )
                    new_id = (registered.data or {}).get("id")
                    if not new_id:
                        raise ValueError(
                            "Registration API call succeeded but did not return expected ID. "
                            f"Response: {json.dumps(registered.data)}"
                        )
                except (LettaAPIError, ValueError) as exc:
                    entry.update(
                        success=False,
                        status="error_registration",
                        error=f"Failed to register MCP tool {mcp_server}/{name}: {exc}",
                    )
                else:
                    resolved.setdefault(new_id, registered.data.get("name") or name)
                    entry.update(success=True, status="registered_mcp", details={"id": new_id, "name": name})
            else:
                entry.update(
                    success=False,
                    status="not_found",
                    error=f"Tool name '{name}' not found as an existing Letta tool or a registerable MCP tool.",
                )
            processing.append(entry)

    attachments: List[Dict[str, Any]] = []
    for tool_id, name in resolved.items():
        try:
            response = await server.api.patch(f"/agents/{quote(agent_id)}/tools/attach/{quote(tool_id)}", json={})
        except LettaAPIError as exc:
            attachments.append({
                "tool_id": tool_id,
                "tool_name": name,
                "success": False,
                "error": f"Failed to attach tool {name} ({tool_id}): {exc}",
                "details": exc.data,
            })
            continue
        attached_ids = [t.get("id") for t in list_field(response.data, "tools") if isinstance(t, dict)]
        if tool_id in attached_ids:
            attachments.append({"tool_id": tool_id, "tool_name": name, "success": True, "message": "Successfully attached."})
        else:
            attachments.append({
                "tool_id": tool_id,
                "tool_name": name,
                "success": False,
                "error": "Attachment API call succeeded, but tool not found in agent's list afterwards.",
            })

    ok = all(p["success"] for p in processing) and all(a["success"] for a in attachments)
    return text_response(
        {
            "agent_id": agent_id,
            "agent_name": agent_name,
            "processing_summary": processing,
            "attachment_summary": attachments,
        },
        is_error=not ok,
    )


async def upload_tool(server, args: Dict[str, Any]) -> Dict[str, Any]:
    """Create a Python tool, replacing any existing tool with the same name."""
    name = require_string(args, "name")
    description = require_string(args, "description")
    source_code = require_string(args, "source_code")
    category = optional_string(args, "category") or "custom"
    agent_id = optional_string(args, "agent_id")

    try:
        existing = as_list((await server.api.get("/tools/")).data)
    except LettaAPIError as exc:
        raise api_error(exc, f"Failed to upload tool {name}") from exc

    for tool in existing:
        if isinstance(tool, dict) and tool.get("name") == name:
            logger.info("Replacing existing tool %s (%s)", name, tool.get("id"))
            try:
                await server.api.delete(f"/tools/{quote(tool['id'])}")
            except LettaAPIError as exc:
                logger.warning("Failed to delete existing tool %s: %s", name, exc)
            break

    tool_data = {
        "source_code": source_code,
        "description": description,
        "tags": [category],
        "source_type": "python",
    }
    try:
        created = await server.api.post("/tools/", json=tool_data)
        tool_id = created_id(created.data, "tool")
        payload: Dict[str, Any] = {"tool_id": tool_id, "tool_name": name, "category": category}

        if agent_id:
            await server.api.patch(f"/agents/{quote(agent_id)}/tools/attach/{quote(tool_id)}", json={})
            agent = await server.api.get(f"/agents/{quote(agent_id)}")
            payload["agent_id"] = agent_id
            payload["agent_name"] = (agent.data or {}).get("name") or "Unknown"
    except LettaAPIError as exc:
        raise api_error(exc, f"Failed to upload tool {name}", invalid=f"Validation error uploading tool {name}") from exc

    return text_response(payload)


TOOLS = [
    ToolDefinition(
        name="attach_tool",
        title="Attach Tools to Agent",
        description=(
            "Attach one or more tools (by ID or name) to an agent. If a name corresponds to an MCP tool "
            "not yet in Letta, it will be registered first. Use list_agent_tools to verify attachment."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "agent_id": {"type": "string", "description": "The ID of the agent to attach the tool(s) to."},
                "tool_id": {
                    "type": "string",
                    "description": "The ID of a single tool to attach (deprecated, use tool_ids or tool_names).",
                },
                "tool_ids": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Optional array of existing Letta tool IDs to attach.",
                },
                "tool_names": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Optional array of tool names: existing Letta tools or MCP tools to register.",
                },
            },
            "required": ["agent_id"],
        },
        read_only=False,
        idempotent=True,
        handler=attach_tool,
    ),
    ToolDefinition(
        name="upload_tool",
        title="Upload Custom Tool",
        description=(
            "Upload a new tool to the Letta system. Use with attach_tool to add it to agents, "
            "or list_agent_tools to verify attachment."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Name of the tool"},
                "description": {"type": "string", "description": "Description of what the tool does"},
                "source_code": {"type": "string", "description": "Python source code for the tool"},
                "category": {
                    "type": "string",
                    "description": "Category/tag for the tool (e.g., \"utility\")",
                    "default": "custom",
                },
                "agent_id": {"type": "string", "description": "Optional agent ID to attach the tool to after creation"},
            },
            "required": ["name", "description", "source_code"],
        },
        read_only=False,
        handler=upload_tool,
    ),
]
