"""Tools that expose the prompt registry to clients without prompt support."""

from __future__ import annotations

from typing import Any, Dict

from letta_mcp.core.errors import NotFoundError
from letta_mcp.registry.handlers import resolve
from letta_mcp.registry.schema import ToolDefinition
from letta_mcp.tools.base import optional_dict, require_string, text_response

PREVIEW_LENGTH = 200


async def list_prompts(server, args: Dict[str, Any]) -> Dict[str, Any]:
    prompts = []
    for entry in server.registry.prompts.list():
        public = entry.public()
        public["title"] = entry.title or entry.name
        prompts.append(public)
    return text_response({"total_prompts": len(prompts), "prompts": prompts}, structured=True)


async def use_prompt(server, args: Dict[str, Any]) -> Dict[str, Any]:
    prompt_name = require_string(args, "prompt_name")
    entry = server.registry.prompts.get(prompt_name)
    if entry is None:
        available = ", ".join(p.name for p in server.registry.prompts.list())
        raise NotFoundError(f"Prompt not found: {prompt_name}. Available prompts: {available}")

    messages = list(await resolve(entry.handler(optional_dict(args, "arguments") or {})))
    first_text = messages[0]["content"]["text"] if messages else ""

    result = text_response({
        "prompt_name": prompt_name,
        "description": entry.description,
        "messages": len(messages),
        "preview": first_text[:PREVIEW_LENGTH] + "...",
    })
    result["structuredContent"] = {
        "prompt_name": prompt_name,
        "description": entry.description,
        "messages": messages,
    }
    return result


TOOLS = [
    ToolDefinition(
        name="list_prompts",
        title="List Prompts",
        description="List all available prompt templates including wizards and workflows",
        input_schema={"type": "object", "properties": {}},
        output_schema={
            "type": "object",
            "properties": {
                "total_prompts": {"type": "integer", "description": "Total number of available prompts"},
                "prompts": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": {"type": "string"},
                            "title": {"type": "string"},
                            "description": {"type": "string"},
                            "arguments": {"type": "array", "items": {"type": "object"}},
                        },
                    },
                },
            },
            "required": ["total_prompts", "prompts"],
        },
        read_only=True,
        handler=list_prompts,
    ),
    ToolDefinition(
        name="use_prompt",
        title="Use Prompt",
        description=(
            "Execute a registered prompt template. Use this to run wizards, workflows, and guided interactions."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "prompt_name": {
                    "type": "string",
                    "description": "Name of the prompt to execute (e.g., letta_agent_wizard, letta_memory_optimizer)",
                },
                "arguments": {
                    "type": "object",
                    "description": "Arguments to pass to the prompt (depends on the specific prompt)",
                    "additionalProperties": True,
                },
            },
            "required": ["prompt_name"],
        },
        output_schema={
            "type": "object",
            "properties": {
                "prompt_name": {"type": "string", "description": "Name of the executed prompt"},
                "description": {"type": "string", "description": "Description of the prompt"},
                "messages": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {"role": {"type": "string"}, "content": {"type": "object"}},
                    },
                    "description": "Messages returned by the prompt",
                },
            },
            "required": ["prompt_name", "messages"],
        },
        read_only=True,
        handler=use_prompt,
    ),
]
