"""Agent tools: listing, CRUD, messaging, export/import and summaries."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple

from letta_mcp.core.client import LettaAPIError
from letta_mcp.core.errors import NotFoundError, UpstreamError, ValidationError, api_error
from letta_mcp.registry.schema import ToolDefinition
from letta_mcp.tools.base import (
    as_list,
    created_id,
    list_field,
    optional_bool,
    optional_dict,
    optional_string,
    quote,
    require_string,
    text_response,
    truncate,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "openai/gpt-4"
DEFAULT_EMBEDDING = "openai/text-embedding-ada-002"
NO_MESSAGE_CONTENT = "Received response but couldn't extract message content"

SYSTEM_SNIPPET_LENGTH = 200
BLOCK_SNIPPET_LENGTH = 100


# ── Listing and CRUD ──────────────────────────────────────────────────────


async def list_agents(server, args: Dict[str, Any]) -> Dict[str, Any]:
    text_filter = optional_string(args, "filter")
    try:
        response = await server.api.get("/agents/")
    except LettaAPIError as exc:
        raise api_error(exc, "Failed to list agents") from exc

    agents = as_list(response.data)
    if text_filter:
        needle = text_filter.lower()
        agents = [
            a for a in agents
            if needle in (a.get("name") or "").lower() or needle in (a.get("description") or "").lower()
        ]

    summary = [{"id": a.get("id"), "name": a.get("name"), "description": a.get("description")} for a in agents]
    return text_response({"success": True, "count": len(summary), "agents": summary})


async def retrieve_agent(server, args: Dict[str, Any]) -> Dict[str, Any]:
    agent_id = require_string(args, "agent_id")
    try:
        response = await server.api.get(f"/agents/{quote(agent_id)}")
    except LettaAPIError as exc:
        raise api_error(exc, f"Failed to retrieve agent {agent_id}", not_found=f"Agent not found: {agent_id}") from exc
    return text_response({"agent": response.data})


def _llm_endpoint(model: str) -> Tuple[str, str, str]:
    """(endpoint_type, endpoint, model_name) for a ``provider/model`` handle."""
    if model == "letta/letta-free":
        return "openai", "https://inference.letta.com", "letta-free"
    if "/" in model:
        provider, _, name = model.partition("/")
        return provider, "https://api.openai.com/v1", name
    return "openai", "https://api.openai.com/v1", model


async def create_agent(server, args: Dict[str, Any]) -> Dict[str, Any]:
    name = require_string(args, "name")
    description = require_string(args, "description")
    model = optional_string(args, "model") or DEFAULT_MODEL
    embedding = optional_string(args, "embedding") or DEFAULT_EMBEDDING

    endpoint_type, endpoint, model_name = _llm_endpoint(model)
    agent_config = {
        "name": name,
        "description": description,
        "agent_type": "memgpt_agent",
        "model": model,
        "llm_config": {
            "model": model_name,
            "model_endpoint_type": endpoint_type,
            "model_endpoint": endpoint,
            "context_window": 16000,
            "max_tokens": 1000,
            "temperature": 0.7,
            "frequency_penalty": 0.5,
            "presence_penalty": 0.5,
            "functions_config": {"allow": True, "functions": []},
        },
        "embedding": embedding,
        "parameters": {
            "context_window": 16000,
            "max_tokens": 1000,
            "temperature": 0.7,
            "presence_penalty": 0.5,
            "frequency_penalty": 0.5,
        },
        "core_memory": {},
    }

    try:
        created = await server.api.post("/agents/", json=agent_config)
        agent_id = created_id(created.data, "agent")
        info = await server.api.get(f"/agents/{quote(agent_id)}")
    except LettaAPIError as exc:
        raise api_error(exc, f"Failed to create agent {name}", invalid="Validation error creating agent") from exc

    capabilities = [t.get("name") for t in list_field(info.data, "tools") if isinstance(t, dict)]
    return text_response({"agent_id": agent_id, "capabilities": capabilities}, structured=True)


async def modify_agent(server, args: Dict[str, Any]) -> Dict[str, Any]:
    agent_id = require_string(args, "agent_id")
    update_data = optional_dict(args, "update_data")
    if not update_data:
        raise ValidationError("Missing required argument: update_data")

    try:
        response = await server.api.patch(f"/agents/{quote(agent_id)}", json=update_data)
    except LettaAPIError as exc:
        raise api_error(
            exc,
            f"Failed to modify agent {agent_id}",
            not_found=f"Agent not found: {agent_id}",
            invalid=f"Validation error updating agent {agent_id}",
        ) from exc
    return text_response({"agent": response.data})


async def delete_agent(server, args: Dict[str, Any]) -> Dict[str, Any]:
    agent_id = require_string(args, "agent_id")
    try:
        await server.api.delete(f"/agents/{quote(agent_id)}")
    except LettaAPIError as exc:
        raise api_error(exc, f"Failed to delete agent {agent_id}", not_found=f"Agent not found: {agent_id}") from exc
    return text_response({"agent_id": agent_id})


async def list_agent_tools(server, args: Dict[str, Any]) -> Dict[str, Any]:
    agent_id = require_string(args, "agent_id")
    try:
        response = await server.api.get(f"/agents/{quote(agent_id)}")
    except LettaAPIError as exc:
        raise api_error(exc, f"Failed to list tools for agent {agent_id}", not_found=f"Agent not found: {agent_id}") from exc

    agent = response.data or {}
    tools = as_list(agent.get("tools"))
    return text_response({
        "agent_id": agent_id,
        "agent_name": agent.get("name"),
        "tool_count": len(tools),
        "tools": tools,
    })


# ── Messaging ─────────────────────────────────────────────────────────────


def extract_stream_text(data: Any) -> str:
    """
    Pull the reply out of a streamed message response.

    The stream is a series of ``data: {...}`` lines. The first assistant
    message wins; otherwise reasoning and delta fragments are joined.
    """
    if not isinstance(data, str):
        return json.dumps(data) if data else NO_MESSAGE_CONTENT

    fragments: List[str] = []
    for line in data.splitlines():
        line = line.strip()
        if not line.startswith("data: "):
            continue
        raw = line[len("data: "):]
        if raw == "[DONE]":
            continue
        try:
            event = json.loads(raw)
        except ValueError:
            fragments.append(raw)
            continue
        if not isinstance(event, dict):
            continue

        if event.get("message_type") == "assistant_message" and event.get("content"):
            return event["content"]
        if event.get("message_type") == "reasoning_message" and event.get("reasoning"):
            fragments.append(f"[Reasoning]: {event['reasoning']}")
        elif isinstance(event.get("delta"), dict) and event["delta"].get("content"):
            fragments.append(event["delta"]["content"])

    return "\n".join(fragments) if fragments else NO_MESSAGE_CONTENT


async def prompt_agent(server, args: Dict[str, Any]) -> Dict[str, Any]:
    agent_id = require_string(args, "agent_id")
    message = require_string(args, "message")
    body = {
        "messages": [{"role": "user", "content": message}],
        "stream_steps": False,
        "stream_tokens": False,
    }

    try:
        info = await server.api.get(f"/agents/{quote(agent_id)}")
        response = await server.api.post(f"/agents/{quote(agent_id)}/messages/stream", json=body)
    except LettaAPIError as exc:
        raise api_error(exc, f"Failed to prompt agent {agent_id}", not_found=f"Agent not found: {agent_id}") from exc

    return text_response({
        "agent_id": agent_id,
        "agent_name": (info.data or {}).get("name"),
        "message": message,
        "response": extract_stream_text(response.data),
    })


# ── Export / import ───────────────────────────────────────────────────────


async def export_agent(server, args: Dict[str, Any]) -> Dict[str, Any]:
    """Write the agent's export JSON to disk, optionally returning it base64-encoded."""
    agent_id = require_string(args, "agent_id")
    output_path = Path(optional_string(args, "output_path") or f"agent_{agent_id}.json").resolve()
    return_base64 = optional_bool(args, "return_base64", False)

    try:
        response = await server.api.get(f"/agents/{quote(agent_id)}/export")
    except LettaAPIError as exc:
        raise api_error(exc, f"Failed to export agent {agent_id}", not_found=f"Agent not found: {agent_id}") from exc

    if not response.data:
        raise UpstreamError(f"Failed to export agent {agent_id}: Received empty data from agent export endpoint.")

    content = json.dumps(response.data, indent=2)
    try:
        output_path.write_text(content)
    except OSError as exc:
        raise UpstreamError(f"Failed to save agent export to {output_path}: {exc}") from exc

    payload: Dict[str, Any] = {"agent_id": agent_id, "file_path": str(output_path)}
    if return_base64:
        payload["base64_data"] = base64.b64encode(content.encode()).decode()
    return text_response(payload)


async def import_agent(server, args: Dict[str, Any]) -> Dict[str, Any]:
    file_path = require_string(args, "file_path")
    path = Path(file_path).resolve()
    if not path.exists():
        raise NotFoundError(f"File not found at path: {path}")

    params: Dict[str, Any] = {}
    for flag in ("append_copy_suffix", "override_existing_tools"):
        if args.get(flag) is not None:
            params[flag] = str(optional_bool(args, flag, True)).lower()
    project_id = optional_string(args, "project_id")
    if project_id:
        params["project_id"] = project_id

    files = {"file": (path.name, path.read_bytes(), "application/json")}
    try:
        response = await server.api.post("/agents/import", files=files, params=params)
    except LettaAPIError as exc:
        raise api_error(
            exc,
            f"Failed to import agent from {file_path}",
            invalid=f"Validation error importing agent from {file_path}",
        ) from exc

    agent = response.data or {}
    return text_response({"agent_id": agent.get("id"), "agent": agent})


# ── Summary ───────────────────────────────────────────────────────────────


def _config_handle(config: Any, type_key: str, model_key: str) -> str:
    config = config or {}
    return config.get("handle") or f"{config.get(type_key)}/{config.get(model_key)}"


def _collection(result: Any, label: str, agent_id: str) -> List[Any]:
    """Auxiliary fetch result as a list; failures degrade to ``[]``."""
    if isinstance(result, BaseException):
        logger.warning("Could not fetch %s for %s: %s", label, agent_id, result)
        return []
    if result.status != 200 or not isinstance(result.data, list):
        logger.warning("Could not fetch %s for %s: status %s", label, agent_id, result.status)
        return []
    return [item for item in result.data if isinstance(item, dict)]


async def get_agent_summary(server, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Summarize an agent: config handles, memory snippets, tool and source lists.

    Only the agent fetch is mandatory. Blocks, tools and sources are
    fetched alongside it and fall back to empty lists when they fail.
    """
    agent_id = require_string(args, "agent_id")
    base = f"/agents/{quote(agent_id)}"

    agent_res, blocks_res, tools_res, sources_res = await asyncio.gather(
        server.api.get(base),
        server.api.get(f"{base}/core-memory/blocks"),
        server.api.get(f"{base}/tools"),
        server.api.get(f"{base}/sources"),
        return_exceptions=True,
    )

    if isinstance(agent_res, LettaAPIError):
        raise api_error(agent_res, "Failed to fetch agent state", not_found=f"Agent not found: {agent_id}") from agent_res
    if isinstance(agent_res, BaseException):
        raise agent_res

    agent = agent_res.data or {}
    blocks = _collection(blocks_res, "core memory", agent_id)
    tools = _collection(tools_res, "tools", agent_id)
    sources = _collection(sources_res, "sources", agent_id)

    attached_tools = [{"id": t.get("id"), "name": t.get("name"), "type": t.get("tool_type")} for t in tools]
    attached_sources = [{"id": s.get("id"), "name": s.get("name")} for s in sources]

    return text_response({
        "agent_id": agent.get("id"),
        "name": agent.get("name"),
        "description": agent.get("description"),
        "system_prompt_snippet": truncate(agent.get("system"), SYSTEM_SNIPPET_LENGTH),
        "llm_config": _config_handle(agent.get("llm_config"), "model_endpoint_type", "model"),
        "embedding_config": _config_handle(
            agent.get("embedding_config"), "embedding_endpoint_type", "embedding_model"
        ),
        "core_memory_blocks": [
            {"label": b.get("label"), "value_snippet": truncate(b.get("value"), BLOCK_SNIPPET_LENGTH)}
            for b in blocks
        ],
        "attached_tools_count": len(attached_tools),
        "attached_tools": attached_tools,
        "attached_sources_count": len(attached_sources),
        "attached_sources": attached_sources,
    })


# ── Definitions ───────────────────────────────────────────────────────────

_AGENT_ID = {"type": "string", "description": "The ID of the agent"}

TOOLS = [
    ToolDefinition(
        name="list_agents",
        title="List All Agents",
        description="List all available agents in the Letta system",
        input_schema={
            "type": "object",
            "properties": {
                "filter": {"type": "string", "description": "Optional filter to search for specific agents"},
            },
            "required": [],
        },
        read_only=True,
        handler=list_agents,
    ),
    ToolDefinition(
        name="retrieve_agent",
        title="Get Agent Details",
        description=(
            "Get the full state of a specific agent by ID. Similar to get_agent_summary but "
            "returns complete details. Use list_agents to find agent IDs."
        ),
        input_schema={
            "type": "object",
            "properties": {"agent_id": _AGENT_ID},
            "required": ["agent_id"],
        },
        read_only=True,
        handler=retrieve_agent,
    ),
    ToolDefinition(
        name="create_agent",
        title="Create New Agent",
        description=(
            "Create a new Letta agent with specified configuration. After creation, use attach_tool "
            "to add capabilities, attach_memory_block to configure memory, or prompt_agent to start conversations."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Name of the new agent"},
                "description": {"type": "string", "description": "Description of the agent's purpose/role"},
                "model": {"type": "string", "description": "The model to use for the agent", "default": DEFAULT_MODEL},
                "embedding": {
                    "type": "string",
                    "description": "The embedding model to use",
                    "default": DEFAULT_EMBEDDING,
                },
            },
            "required": ["name", "description"],
        },
        output_schema={
            "type": "object",
            "properties": {
                "agent_id": {"type": "string", "description": "Unique identifier of the created agent"},
                "capabilities": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "List of tool names attached to the agent",
                },
            },
            "required": ["agent_id"],
        },
        read_only=False,
        destructive=False,
        handler=create_agent,
    ),
    ToolDefinition(
        name="modify_agent",
        title="Modify Agent Configuration",
        description=(
            "Update an existing agent by ID with provided data. Use get_agent_summary to see current "
            "config, list_llm_models/list_embedding_models for model options. For tools, use attach_tool instead."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "agent_id": _AGENT_ID,
                "update_data": {
                    "type": "object",
                    "description": "Fields to update (e.g., name, system, description, tool_ids)",
                    "properties": {
                        "name": {"type": "string", "description": "New name for the agent"},
                        "system": {"type": "string", "description": "New system prompt"},
                        "description": {"type": "string", "description": "New description"},
                    },
                    "additionalProperties": True,
                },
            },
            "required": ["agent_id", "update_data"],
        },
        read_only=False,
        idempotent=True,
        handler=modify_agent,
    ),
    ToolDefinition(
        name="delete_agent",
        title="Delete Agent",
        description=(
            "Delete a specific agent by ID. Use list_agents to find agent IDs. For bulk deletion, "
            "use bulk_delete_agents. WARNING: This action is permanent."
        ),
        input_schema={
            "type": "object",
            "properties": {"agent_id": _AGENT_ID},
            "required": ["agent_id"],
        },
        read_only=False,
        destructive=True,
        handler=delete_agent,
    ),
    ToolDefinition(
        name="list_agent_tools",
        title="List Agent Tools",
        description=(
            "List all tools available for a specific agent. Use attach_tool to add more tools "
            "or list_mcp_tools_by_server to discover available tools."
        ),
        input_schema={
            "type": "object",
            "properties": {"agent_id": _AGENT_ID},
            "required": ["agent_id"],
        },
        read_only=True,
        handler=list_agent_tools,
    ),
    ToolDefinition(
        name="prompt_agent",
        title="Send Message to Agent",
        description=(
            "Send a message to an agent and get a response. Ensure the agent has necessary tools "
            "attached (see attach_tool) first. Use list_agents to find agent IDs."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "agent_id": _AGENT_ID,
                "message": {"type": "string", "description": "Message to send to the agent"},
            },
            "required": ["agent_id", "message"],
        },
        read_only=False,
        handler=prompt_agent,
    ),
    ToolDefinition(
        name="export_agent",
        title="Export Agent",
        description=(
            "Export an agent's configuration to a JSON file. Use import_agent to recreate the agent "
            "later, or clone_agent for a quick copy."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "agent_id": {"type": "string", "description": "The ID of the agent to export."},
                "output_path": {
                    "type": "string",
                    "description": "Optional: Path to save the exported JSON file. Defaults to agent_{agent_id}.json.",
                },
                "return_base64": {
                    "type": "boolean",
                    "description": "Optional: If true, return the JSON content as base64 string. Defaults to false.",
                    "default": False,
                },
            },
            "required": ["agent_id"],
        },
        read_only=True,
        handler=export_agent,
    ),
    ToolDefinition(
        name="import_agent",
        title="Import Agent",
        description=(
            "Import a serialized agent JSON file and recreate the agent in the system. Use export_agent "
            "to create the JSON file, then modify_agent or attach_tool to customize the imported agent."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Path to the agent JSON file to import."},
                "append_copy_suffix": {
                    "type": "boolean",
                    "description": "Optional: If true, appends \"_copy\" to the agent name. Defaults to true.",
                    "default": True,
                },
                "override_existing_tools": {
                    "type": "boolean",
                    "description": (
                        "Optional: If true, existing tools can get their source code overwritten by the "
                        "uploaded tool definitions. Defaults to true."
                    ),
                    "default": True,
                },
                "project_id": {
                    "type": "string",
                    "description": "Optional: The project ID to associate the uploaded agent with.",
                },
            },
            "required": ["file_path"],
        },
        read_only=False,
        handler=import_agent,
    ),
    ToolDefinition(
        name="get_agent_summary",
        title="Get Agent Summary",
        description=(
            "Provides a concise summary of an agent's configuration, including core memory snippets "
            "and attached tool/source names. Use list_agents to find agent IDs."
        ),
        input_schema={
            "type": "object",
            "properties": {"agent_id": {"type": "string", "description": "The ID of the agent to summarize."}},
            "required": ["agent_id"],
        },
        read_only=True,
        handler=get_agent_summary,
    ),
]
