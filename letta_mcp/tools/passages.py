"""Archival memory (passage) tools."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from letta_mcp.core.client import LettaAPIError
from letta_mcp.core.errors import (
    IncompletePassageRecord,
    PassageNotFound,
    ValidationError,
    api_error,
)
from letta_mcp.registry.schema import ToolDefinition
from letta_mcp.tools.base import (
    as_list,
    optional_bool,
    optional_dict,
    optional_int,
    optional_string,
    quote,
    require_string,
    strip_embedding,
    text_response,
)

logger = logging.getLogger(__name__)

# Fields a fetched passage must carry for the PATCH round trip.
ROUND_TRIP_FIELDS = ("embedding", "embedding_config")


def _shape(passages: Any, include_embeddings: bool) -> List[Any]:
    passages = as_list(passages)
    return passages if include_embeddings else [strip_embedding(p) for p in passages]


async def list_passages(server, args: Dict[str, Any]) -> Dict[str, Any]:
    agent_id = require_string(args, "agent_id")
    include_embeddings = optional_bool(args, "include_embeddings", False)

    params: Dict[str, Any] = {}
    for key in ("after", "before", "search"):
        value = optional_string(args, key)
        if value:
            params[key] = value
    limit = optional_int(args, "limit")
    if limit:
        params["limit"] = limit
    if args.get("ascending") is not None:
        params["ascending"] = str(optional_bool(args, "ascending", True)).lower()

    try:
        response = await server.api.get(f"/agents/{quote(agent_id)}/archival-memory", params=params)
    except LettaAPIError as exc:
        raise api_error(exc, f"Failed to list passages for agent {agent_id}", not_found=f"Agent not found: {agent_id}") from exc

    passages = _shape(response.data, include_embeddings)
    return text_response({
        "success": True,
        "agent_id": agent_id,
        "passage_count": len(passages),
        "passages": passages,
        "embeddings_included": include_embeddings,
    })


async def create_passage(server, args: Dict[str, Any]) -> Dict[str, Any]:
    agent_id = require_string(args, "agent_id")
    text = args.get("text")
    if not isinstance(text, str):
        raise ValidationError("Missing required argument: text")
    include_embeddings = optional_bool(args, "include_embeddings", False)

    try:
        response = await server.api.post(f"/agents/{quote(agent_id)}/archival-memory", json={"text": text})
    except LettaAPIError as exc:
        raise api_error(
            exc,
            f"Failed to create passage for agent {agent_id}",
            not_found=f"Agent not found: {agent_id}",
            invalid=f"Validation error creating passage for agent {agent_id}",
        ) from exc

    return text_response({"passages": _shape(response.data, include_embeddings)})


async def modify_passage(server, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Replace a passage's text, keeping every other field as fetched.

    There is no endpoint for a single passage, so the agent's archive is
    listed with embeddings and scanned by id. The PATCH body is the whole
    fetched record with only ``text`` swapped. The server may re-chunk the
    text, so every returned passage is passed back.
    """
    agent_id = require_string(args, "agent_id")
    memory_id = require_string(args, "memory_id")
    update_data = optional_dict(args, "update_data") or {}
    new_text = update_data.get("text")
    if not isinstance(new_text, str):
        raise ValidationError(
            "Missing or invalid required argument: update_data must contain a 'text' field (string)."
        )
    include_embeddings = optional_bool(args, "include_embeddings", False)
    base = f"/agents/{quote(agent_id)}/archival-memory"

    try:
        listing = await server.api.get(base, params={"include_embeddings": "true"})
    except LettaAPIError as exc:
        raise api_error(
            exc,
            f"Failed to fetch passages for agent {agent_id}",
            not_found=f"Agent not found when listing passages: {agent_id}",
        ) from exc

    existing = next(
        (p for p in as_list(listing.data) if isinstance(p, dict) and p.get("id") == memory_id),
        None,
    )
    if existing is None:
        raise PassageNotFound(f"Could not find passage {memory_id} for agent {agent_id}.")

    missing = [name for name in ROUND_TRIP_FIELDS if not existing.get(name)]
    if missing:
        raise IncompletePassageRecord(
            f"Fetched passage {memory_id} is missing required fields ({', '.join(missing)}).",
            details={"missing": missing},
        )

    payload = {**existing, "text": new_text}
    logger.debug("Updating passage %s for agent %s", memory_id, agent_id)

    try:
        response = await server.api.patch(f"{base}/{quote(memory_id)}", json=payload)
    except LettaAPIError as exc:
        raise api_error(
            exc,
            f"Failed to modify passage {memory_id}",
            not_found=f"Agent or Passage not found during update: agent_id={agent_id}, memory_id={memory_id}",
            invalid=f"Validation error modifying passage {memory_id}",
        ) from exc

    return text_response({
        "success": True,
        "message": f"Passage {memory_id} for agent {agent_id} modified successfully.",
        "passages": _shape(response.data, include_embeddings),
        "embeddings_included": include_embeddings,
    })


async def delete_passage(server, args: Dict[str, Any]) -> Dict[str, Any]:
    agent_id = require_string(args, "agent_id")
    memory_id = require_string(args, "memory_id")
    try:
        await server.api.delete(f"/agents/{quote(agent_id)}/archival-memory/{quote(memory_id)}")
    except LettaAPIError as exc:
        raise api_error(
            exc,
            f"Failed to delete passage {memory_id}",
            not_found=f"Agent or Passage not found: agent_id={agent_id}, memory_id={memory_id}",
        ) from exc
    return text_response({"memory_id": memory_id, "agent_id": agent_id})


_INCLUDE_EMBEDDINGS = {
    "type": "boolean",
    "description": "Whether to include the full embedding vectors in the response (default: false).",
    "default": False,
}

TOOLS = [
    ToolDefinition(
        name="list_passages",
        title="List Archival Memories",
        description="Retrieve the memories in an agent's archival memory store (paginated query).",
        input_schema={
            "type": "object",
            "properties": {
                "agent_id": {"type": "string", "description": "ID of the agent whose passages to list"},
                "after": {"type": "string", "description": "Unique ID of the memory to start the query range at."},
                "before": {"type": "string", "description": "Unique ID of the memory to end the query range at."},
                "limit": {"type": "integer", "description": "How many results to include in the response."},
                "search": {"type": "string", "description": "Search passages by text content."},
                "ascending": {
                    "type": "boolean",
                    "description": "Sort oldest to newest (true, default) or newest to oldest (false).",
                    "default": True,
                },
                "include_embeddings": _INCLUDE_EMBEDDINGS,
            },
            "required": ["agent_id"],
        },
        read_only=True,
        handler=list_passages,
    ),
    ToolDefinition(
        name="create_passage",
        title="Create Archival Memory",
        description=(
            "Insert a memory into an agent's archival memory store. Use list_passages to view existing "
            "memories, modify_passage to edit, or delete_passage to remove."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "agent_id": {"type": "string", "description": "ID of the agent to add the passage to"},
                "text": {"type": "string", "description": "Text content to write to archival memory."},
                "include_embeddings": _INCLUDE_EMBEDDINGS,
            },
            "required": ["agent_id", "text"],
        },
        read_only=False,
        handler=create_passage,
    ),
    ToolDefinition(
        name="modify_passage",
        title="Modify Archival Memory",
        description="Modify a memory in the agent's archival memory store.",
        input_schema={
            "type": "object",
            "properties": {
                "agent_id": {"type": "string", "description": "ID of the agent whose passage to modify"},
                "memory_id": {"type": "string", "description": "ID of the passage (memory) to modify"},
                "update_data": {
                    "type": "object",
                    "description": "Fields to update. Currently only 'text' is supported.",
                    "properties": {"text": {"type": "string", "description": "The new text content for the passage."}},
                    "required": ["text"],
                },
                "include_embeddings": _INCLUDE_EMBEDDINGS,
            },
            "required": ["agent_id", "memory_id", "update_data"],
        },
        read_only=False,
        idempotent=True,
        handler=modify_passage,
    ),
    ToolDefinition(
        name="delete_passage",
        title="Delete Archival Memory",
        description=(
            "Delete a memory from an agent's archival memory store. Use list_passages to find memory IDs. "
            "WARNING: This action is permanent."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "agent_id": {"type": "string", "description": "ID of the agent whose passage to delete"},
                "memory_id": {"type": "string", "description": "ID of the passage (memory) to delete"},
            },
            "required": ["agent_id", "memory_id"],
        },
        read_only=False,
        destructive=True,
        handler=delete_passage,
    ),
]
