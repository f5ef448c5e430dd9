"""Core memory block tools."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from letta_mcp.core.client import LettaAPIError
from letta_mcp.core.errors import ValidationError, api_error
from letta_mcp.registry.schema import ToolDefinition
from letta_mcp.tools.base import (
    as_list,
    created_id,
    optional_bool,
    optional_dict,
    optional_int,
    optional_string,
    page_slice,
    quote,
    require_string,
    text_response,
    truncate,
)

PREVIEW_LENGTH = 200
DEFAULT_BLOCK_LIMIT = 5000


def _format_block(block: Dict[str, Any], full_content: bool) -> Dict[str, Any]:
    result = {
        "id": block.get("id"),
        "name": block.get("name") or "Unnamed Block",
        "label": block.get("label") or "No Label",
        "metadata": block.get("metadata") or {},
        "limit": block.get("limit") or DEFAULT_BLOCK_LIMIT,
        "created_at": block.get("created_at"),
        "updated_at": block.get("updated_at"),
    }
    value = block.get("value")
    if full_content:
        result["value"] = value
    else:
        result["value_preview"] = truncate(value, PREVIEW_LENGTH) if isinstance(value, str) else "Non-string value"
    if isinstance(block.get("agents"), list):
        result["agents"] = [{"id": a.get("id"), "name": a.get("name")} for a in block["agents"]]
    return result


async def list_memory_blocks(server, args: Dict[str, Any]) -> Dict[str, Any]:
    agent_id = optional_string(args, "agent_id")
    text_filter = optional_string(args, "filter")
    page = max(optional_int(args, "page", 1), 1)
    page_size = min(max(optional_int(args, "pageSize", 10), 1), 100)

    params: Dict[str, Any] = {"templates_only": str(optional_bool(args, "templates_only", False)).lower()}
    for key in ("label", "name"):
        value = optional_string(args, key)
        if value:
            params[key] = value

    endpoint = f"/agents/{quote(agent_id)}/core-memory/blocks" if agent_id else "/blocks"
    try:
        response = await server.api.get(endpoint, params=params)
    except LettaAPIError as exc:
        raise api_error(exc, "Failed to list memory blocks") from exc

    blocks = [b for b in as_list(response.data) if isinstance(b, dict)]
    if text_filter:
        needle = text_filter.lower()
        blocks = [
            b for b in blocks
            if any(isinstance(b.get(k), str) and needle in b[k].lower() for k in ("name", "label", "value"))
        ]

    page_data = page_slice(blocks, page, page_size)
    full = optional_bool(args, "include_full_content", False)
    payload: Dict[str, Any] = {"blocks": [_format_block(b, full) for b in page_data["items"]]}
    if len(blocks) > page_size:
        pagination = page_data["pagination"]
        payload["pagination"] = {
            "page": page,
            "pageSize": page_size,
            "totalBlocks": pagination["total"],
            "totalPages": pagination["totalPages"],
        }
    return text_response(payload)


async def read_memory_block(server, args: Dict[str, Any]) -> Dict[str, Any]:
    block_id = require_string(args, "block_id")
    try:
        response = await server.api.get(f"/blocks/{quote(block_id)}")
    except LettaAPIError as exc:
        raise api_error(exc, f"Failed to read memory block {block_id}", not_found=f"Memory block not found: {block_id}") from exc
    return text_response(response.data)


async def update_memory_block(server, args: Dict[str, Any]) -> Dict[str, Any]:
    block_id = require_string(args, "block_id")
    value = args.get("value")
    metadata = optional_dict(args, "metadata")
    if value is None and metadata is None:
        raise ValidationError("Either value or metadata must be provided")

    update: Dict[str, Any] = {}
    if value is not None:
        update["value"] = value
    if metadata is not None:
        update["metadata"] = metadata

    try:
        response = await server.api.patch(f"/blocks/{quote(block_id)}", json=update)
    except LettaAPIError as exc:
        raise api_error(
            exc,
            f"Failed to update memory block {block_id}",
            not_found=f"Memory block not found: {block_id}",
            invalid=f"Validation error updating memory block {block_id}",
        ) from exc
    return text_response({"success": True, "block": response.data})


async def attach_memory_block(server, args: Dict[str, Any]) -> Dict[str, Any]:
    block_id = require_string(args, "block_id")
    agent_id = require_string(args, "agent_id")

    try:
        block = (await server.api.get(f"/blocks/{quote(block_id)}")).data or {}
        block_name = block.get("name") or "Unnamed Block"
        label = optional_string(args, "label") or block.get("label") or "custom"

        await server.api.patch(f"/agents/{quote(agent_id)}/core-memory/blocks/attach/{quote(block_id)}", json={})
        agent = (await server.api.get(f"/agents/{quote(agent_id)}")).data or {}
    except LettaAPIError as exc:
        raise api_error(exc, f"Failed to attach memory block {block_id} to agent {agent_id}") from exc

    agent_name = agent.get("name") or "Unknown"
    return text_response({
        "success": True,
        "message": f"Memory block {block_name} successfully attached to agent {agent_name} with label {label}.",
        "agent_id": agent_id,
        "agent_name": agent_name,
        "block_id": block_id,
        "block_name": block_name,
        "label": label,
    })


async def create_memory_block(server, args: Dict[str, Any]) -> Dict[str, Any]:
    name = require_string(args, "name")
    label = require_string(args, "label")
    value = require_string(args, "value")
    agent_id = optional_string(args, "agent_id")
    metadata = optional_dict(args, "metadata") or {
        "type": label,
        "version": "1.0",
        "last_updated": datetime.now(timezone.utc).isoformat(),
    }

    block_data = {"name": name, "label": label, "value": value, "metadata": metadata}
    try:
        created = await server.api.post("/blocks", json=block_data)
        block_id = created_id(created.data, "memory block")
        payload: Dict[str, Any] = {"block_id": block_id, "name": name, "label": label}

        if agent_id:
            await server.api.patch(f"/agents/{quote(agent_id)}/core-memory/blocks/attach/{quote(block_id)}", json={})
            agent = (await server.api.get(f"/agents/{quote(agent_id)}")).data or {}
            payload["agent_id"] = agent_id
            payload["agent_name"] = agent.get("name") or "Unknown"
    except LettaAPIError as exc:
        raise api_error(exc, f"Failed to create memory block {name}", invalid="Validation error creating memory block") from exc

    return text_response(payload)


TOOLS = [
    ToolDefinition(
        name="list_memory_blocks",
        title="List Memory Blocks",
        description=(
            "List all memory blocks available in the Letta system. Use create_memory_block to add new ones, "
            "update_memory_block to modify, or attach_memory_block to link them to agents."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "filter": {"type": "string", "description": "Optional filter to search blocks by name, label or content"},
                "agent_id": {"type": "string", "description": "Optional agent ID to list blocks for a specific agent"},
                "page": {"type": "number", "description": "Page number for pagination (starts at 1)"},
                "pageSize": {"type": "number", "description": "Number of blocks per page (1-100, default: 10)"},
                "label": {"type": "string", "description": "Optional filter for block label (e.g., \"human\", \"persona\")"},
                "templates_only": {"type": "boolean", "description": "Whether to include only templates (default: false)"},
                "name": {"type": "string", "description": "Optional filter for block name"},
                "include_full_content": {
                    "type": "boolean",
                    "description": "Whether to include the full content of blocks (default: false)",
                },
            },
            "required": [],
        },
        read_only=True,
        handler=list_memory_blocks,
    ),
    ToolDefinition(
        name="read_memory_block",
        title="Read Memory Block",
        description=(
            "Get full details of a specific memory block by ID. Use list_memory_blocks to find block IDs."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "block_id": {"type": "string", "description": "ID of the memory block to retrieve"},
                "agent_id": {"type": "string", "description": "Optional agent ID for authorization"},
            },
            "required": ["block_id"],
        },
        read_only=True,
        handler=read_memory_block,
    ),
    ToolDefinition(
        name="update_memory_block",
        title="Update Memory Block",
        description="Update the contents and metadata of a memory block",
        input_schema={
            "type": "object",
            "properties": {
                "block_id": {"type": "string", "description": "ID of the memory block to update"},
                "value": {"type": "string", "description": "New value for the memory block (optional)"},
                "metadata": {"type": "object", "description": "New metadata for the memory block (optional)"},
                "agent_id": {"type": "string", "description": "Optional agent ID for authorization"},
            },
            "required": ["block_id"],
        },
        read_only=False,
        idempotent=True,
        handler=update_memory_block,
    ),
    ToolDefinition(
        name="attach_memory_block",
        title="Attach Memory Block",
        description="Attach a memory block to an agent",
        input_schema={
            "type": "object",
            "properties": {
                "block_id": {"type": "string", "description": "The ID of the memory block to attach"},
                "agent_id": {"type": "string", "description": "The ID of the agent to attach the memory block to"},
                "label": {"type": "string", "description": "Optional label for the memory block (e.g., \"persona\")"},
            },
            "required": ["block_id", "agent_id"],
        },
        read_only=False,
        idempotent=True,
        handler=attach_memory_block,
    ),
    ToolDefinition(
        name="create_memory_block",
        title="Create Memory Block",
        description=(
            "Create a new memory block in the Letta system. Common labels: \"persona\", \"human\", \"system\". "
            "Use attach_memory_block to link to agents."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Name of the memory block"},
                "label": {"type": "string", "description": "Label for the memory block (e.g., \"persona\", \"human\")"},
                "value": {"type": "string", "description": "Content of the memory block"},
                "agent_id": {"type": "string", "description": "Optional agent ID to attach the new block to"},
                "metadata": {"type": "object", "description": "Optional metadata for the memory block"},
            },
            "required": ["name", "label", "value"],
        },
        read_only=False,
        handler=create_memory_block,
    ),
]
