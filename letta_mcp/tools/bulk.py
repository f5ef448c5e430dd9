"""Fan-out tools: apply one side effect to many agents and report per-agent outcomes."""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from letta_mcp.core.client import LettaAPIError
from letta_mcp.core.errors import UpstreamError, ValidationError
from letta_mcp.registry.schema import ToolDefinition
from letta_mcp.tools.base import optional_string, quote, require_string, string_list, text_response

logger = logging.getLogger(__name__)

NO_AGENTS_MESSAGE = "No agents found matching the specified filter."


def describe_failure(prefix: str, exc: Exception) -> str:
    """``prefix: message`` with upstream status and body appended when known."""
    message = f"{prefix}: {exc}"
    status = getattr(exc, "status", None)
    if status is not None:
        message += f" (Status: {status}, Data: {json.dumps(getattr(exc, 'data', None))})"
    return message


async def find_agents(
    server,
    name_filter: Optional[str],
    tag_filter: Optional[str],
    operation: str,
) -> List[Dict[str, Any]]:
    params: Dict[str, Any] = {}
    if name_filter:
        params["name"] = name_filter
    if tag_filter:
        params["tags"] = tag_filter

    logger.info("Listing agents for bulk %s with filter name=%r tags=%r", operation, name_filter, tag_filter)
    try:
        response = await server.api.get("/agents/", params=params)
    except LettaAPIError as exc:
        raise UpstreamError(
            f"Failed during bulk {operation} operation: {exc}", status=exc.status, details=exc.data
        ) from exc
    return response.data if isinstance(response.data, list) else []


async def fan_out(
    agents: List[Dict[str, Any]],
    action: Callable[[str], Awaitable[Any]],
    failure_prefix: Callable[[Dict[str, Any]], str],
) -> Dict[str, Any]:
    """
    Run ``action`` for each agent in order, isolating failures.

    A failing agent is recorded with ``status: error`` and processing
    continues. Nothing that already succeeded is rolled back.
    """
    results: List[Dict[str, Any]] = []
    for agent in agents:
        agent_id = agent.get("id")
        entry: Dict[str, Any] = {"agent_id": agent_id, "name": agent.get("name")}
        try:
            await action(agent_id)
        except LettaAPIError as exc:
            entry["status"] = "error"
            entry["error"] = describe_failure(failure_prefix(agent), exc)
            logger.warning(entry["error"])
        else:
            entry["status"] = "success"
        results.append(entry)

    success_count = sum(1 for r in results if r["status"] == "success")
    return {
        "summary": {
            "total_agents": len(agents),
            "success_count": success_count,
            "error_count": len(results) - success_count,
        },
        "results": results,
    }


async def bulk_attach_tool_to_agents(server, args: Dict[str, Any]) -> Dict[str, Any]:
    tool_id = require_string(args, "tool_id")
    name_filter = optional_string(args, "agent_name_filter")
    tag_filter = optional_string(args, "agent_tag_filter")
    if not name_filter and not tag_filter:
        raise ValidationError("Missing required argument: Provide either agent_name_filter or agent_tag_filter.")

    agents = await find_agents(server, name_filter, tag_filter, "attach")
    if not agents:
        return text_response({"message": NO_AGENTS_MESSAGE, "results": []})

    async def attach(agent_id: str) -> None:
        await server.api.patch(f"/agents/{quote(agent_id)}/tools/attach/{quote(tool_id)}", json={})

    result = await fan_out(
        agents,
        attach,
        lambda agent: f"Failed to attach tool {tool_id} to agent {agent.get('id')}",
    )
    logger.info("Bulk attach of %s: %s", tool_id, result["summary"])
    return text_response(result)


async def bulk_delete_agents(server, args: Dict[str, Any]) -> Dict[str, Any]:
    agent_ids = string_list(args, "agent_ids")
    name_filter = optional_string(args, "agent_name_filter")
    tag_filter = optional_string(args, "agent_tag_filter")
    if not agent_ids and not name_filter and not tag_filter:
        raise ValidationError(
            "Missing required argument: Provide agent_ids, agent_name_filter, or agent_tag_filter."
        )

    if agent_ids:
        agents = [{"id": agent_id, "name": f"ID: {agent_id}"} for agent_id in agent_ids]
    else:
        agents = await find_agents(server, name_filter, tag_filter, "delete")
    if not agents:
        return text_response({"message": NO_AGENTS_MESSAGE, "results": []})

    async def delete(agent_id: str) -> None:
        await server.api.delete(f"/agents/{quote(agent_id)}")

    result = await fan_out(
        agents,
        delete,
        lambda agent: f"Failed to delete agent {agent.get('id')} ({agent.get('name')})",
    )
    logger.info("Bulk delete: %s", result["summary"])
    return text_response(result)


TOOLS = [
    ToolDefinition(
        name="bulk_attach_tool_to_agents",
        title="Bulk Attach Tool",
        description=(
            "Attaches a specified tool to multiple agents based on filter criteria (name or tags). "
            "Use list_agents to preview which agents match your filters."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "tool_id": {"type": "string", "description": "The ID of the tool to attach."},
                "agent_name_filter": {"type": "string", "description": "Optional: Filter agents by name."},
                "agent_tag_filter": {
                    "type": "string",
                    "description": "Optional: Filter agents by tag(s). Provide a single tag or comma-separated list.",
                },
            },
            "required": ["tool_id"],
        },
        read_only=False,
        idempotent=True,
        handler=bulk_attach_tool_to_agents,
    ),
    ToolDefinition(
        name="bulk_delete_agents",
        title="Bulk Delete Agents",
        description=(
            "Deletes multiple agents based on filter criteria (name or tags) or a specific list of IDs. "
            "Use list_agents first to identify agents to delete. WARNING: This action is permanent."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "agent_ids": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Optional: A specific list of agent IDs to delete.",
                },
                "agent_name_filter": {"type": "string", "description": "Optional: Filter agents to delete by name."},
                "agent_tag_filter": {
                    "type": "string",
                    "description": "Optional: Filter agents to delete by tag(s). Comma-separated for several.",
                },
            },
            "required": [],
        },
        read_only=False,
        destructive=True,
        handler=bulk_delete_agents,
    ),
]
