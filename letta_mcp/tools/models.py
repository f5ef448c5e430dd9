"""Model catalogue tools."""

from __future__ import annotations

from typing import Any, Dict

from letta_mcp.core.client import LettaAPIError
from letta_mcp.core.errors import api_error
from letta_mcp.registry.schema import ToolDefinition
from letta_mcp.tools.base import as_list, text_response


async def _list_models(server, path: str, kind: str) -> Dict[str, Any]:
    try:
        response = await server.api.get(path)
    except LettaAPIError as exc:
        raise api_error(exc, f"Failed to list {kind} models") from exc
    models = as_list(response.data)
    return text_response({"model_count": len(models), "models": models})


async def list_llm_models(server, args: Dict[str, Any]) -> Dict[str, Any]:
    return await _list_models(server, "/models/", "LLM")


async def list_embedding_models(server, args: Dict[str, Any]) -> Dict[str, Any]:
    return await _list_models(server, "/models/embedding", "embedding")


TOOLS = [
    ToolDefinition(
        name="list_llm_models",
        title="List LLM Models",
        description=(
            "List available LLM models configured on the Letta server. Use with create_agent or "
            "modify_agent to set agent model preferences."
        ),
        input_schema={"type": "object", "properties": {}, "required": []},
        read_only=True,
        handler=list_llm_models,
    ),
    ToolDefinition(
        name="list_embedding_models",
        title="List Embedding Models",
        description=(
            "List available embedding models configured on the Letta server. Use with create_agent or "
            "modify_agent to set agent embedding preferences."
        ),
        input_schema={"type": "object", "properties": {}, "required": []},
        read_only=True,
        handler=list_embedding_models,
    ),
]
