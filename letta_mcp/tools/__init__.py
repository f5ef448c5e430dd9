"""Tool catalogue: every tool definition the server advertises."""

from typing import List

from letta_mcp.registry.schema import ToolDefinition
from letta_mcp.registry.store import Registry
from letta_mcp.tools import agents, attach, bulk, clone, mcp_tools, memory, models, passages, prompts

ALL_TOOLS: List[ToolDefinition] = [
    *agents.TOOLS,
    *clone.TOOLS,
    *bulk.TOOLS,
    *attach.TOOLS,
    *mcp_tools.TOOLS,
    *memory.TOOLS,
    *passages.TOOLS,
    *models.TOOLS,
    *prompts.TOOLS,
]


def register_tools(registry: Registry) -> None:
    for tool in ALL_TOOLS:
        registry.register_tool(tool)


__all__ = ["ALL_TOOLS", "register_tools"]
