"""
Built-in resources: live system snapshots and static documentation.

JSON resources never raise on an upstream failure. The error message and a
timestamp are returned as the resource body instead, so a client reading
``letta://system/status`` against an unreachable server still gets content.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from letta_mcp import __version__
from letta_mcp.core.client import LettaAPIError
from letta_mcp.registry.schema import ResourceEntry, ResourceTemplateEntry, ToolDefinition
from letta_mcp.registry.store import Registry

logger = logging.getLogger(__name__)

MARKDOWN = "text/markdown"


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def json_text(payload: Any) -> Dict[str, str]:
    return {"text": json.dumps(payload, indent=2)}


def error_text(exc: Exception) -> Dict[str, str]:
    return json_text({"error": str(exc), "timestamp": timestamp()})


# ── Live resources ────────────────────────────────────────────────────────


async def system_status(server) -> Dict[str, str]:
    try:
        response = await server.api.get("/health")
    except LettaAPIError as exc:
        logger.error("Error fetching system status: %s", exc)
        return json_text({"status": "error", "timestamp": timestamp(), "error": str(exc)})
    return json_text({
        "status": "healthy",
        "timestamp": timestamp(),
        "version": __version__,
        "api_health": response.data,
    })


async def available_models(server) -> Dict[str, str]:
    try:
        llm, embedding = await asyncio.gather(
            server.api.get("/models/"),
            server.api.get("/models/embedding"),
        )
    except LettaAPIError as exc:
        logger.error("Error fetching models: %s", exc)
        return error_text(exc)
    return json_text({
        "llm_models": llm.data,
        "embedding_models": embedding.data,
        "timestamp": timestamp(),
    })


async def mcp_servers(server) -> Dict[str, str]:
    try:
        response = await server.api.get("/tools/mcp/servers")
    except LettaAPIError as exc:
        logger.error("Error fetching MCP servers: %s", exc)
        return error_text(exc)
    return json_text({"servers": response.data, "timestamp": timestamp()})


def summarize_agent(agent: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": agent.get("id"),
        "name": agent.get("name"),
        "description": agent.get("description"),
        "created_at": agent.get("created_at"),
        "tool_count": len(agent.get("tools") or []),
        "memory_blocks": len(agent.get("memory") or []),
    }


async def agent_list(server) -> Dict[str, str]:
    try:
        response = await server.api.get("/agents/")
    except LettaAPIError as exc:
        logger.error("Error fetching agents: %s", exc)
        return error_text(exc)
    agents = [a for a in (response.data or []) if isinstance(a, dict)]
    return json_text({
        "total_agents": len(agents),
        "agents": [summarize_agent(a) for a in agents],
        "timestamp": timestamp(),
    })


# ── Documentation ─────────────────────────────────────────────────────────


def anchor(name: str) -> str:
    return name.replace("_", "-")


def tool_documentation(tool: ToolDefinition) -> str:
    """Markdown section for one tool: description, hints and parameter list."""
    lines: List[str] = [f"## {tool.name}", ""]
    if tool.title:
        lines += [f"**{tool.title}**", ""]
    lines += [tool.description, ""]

    hints = tool.annotations()
    if hints:
        lines.append("**Hints:** " + ", ".join(f"{k}={str(v).lower()}" for k, v in hints.items()))
        lines.append("")

    properties = tool.input_schema.get("properties") or {}
    required = set(tool.input_schema.get("required") or [])
    if properties:
        lines += ["### Parameters", ""]
        for name, prop in properties.items():
            kind = prop.get("type", "any")
            flag = "required" if name in required else "optional"
            description = prop.get("description", "")
            lines.append(f"- `{name}` ({kind}, {flag}): {description}".rstrip(": "))
        lines.append("")
    else:
        lines += ["This tool takes no parameters.", ""]
    return "\n".join(lines)


def all_tools_docs(server) -> Dict[str, str]:
    tools = server.registry.tools.list()
    parts = [
        "# Letta MCP Server - All Tools Documentation\n\n",
        "This document provides detailed information about all available tools.\n\n",
        "## Table of Contents\n\n",
    ]
    parts += [f"- [{tool.name}](#{anchor(tool.name)})\n" for tool in tools]
    parts.append("\n---\n\n")
    for tool in tools:
        parts.append(tool_documentation(tool))
        parts.append("\n---\n\n")
    return {"text": "".join(parts)}


MCP_INTEGRATION_DOCS = """# Letta MCP Integration Documentation

## Overview
This MCP server exposes a Letta server to MCP clients:
- Agent management (create, modify, clone, export, import, delete)
- Memory control (core memory blocks and archival passages)
- Tool management and MCP server integration
- Model discovery

## Quick Start

### Creating an Agent
Call `create_agent` with a name and description. Defaults are used for the model and embedding.

### Attaching Tools
1. Find tools with `list_mcp_servers` and `list_mcp_tools_by_server`
2. Register and attach an MCP tool in one step with `add_mcp_tool_to_letta`
3. Attach existing tools with `attach_tool`

### Managing Memory
- Core memory: `create_memory_block`, `attach_memory_block`, `update_memory_block`
- Archival memory: `create_passage`, `modify_passage`, `delete_passage`

## Prompts
- `letta_agent_wizard`: guided agent creation
- `letta_memory_optimizer`: memory review and cleanup
- `letta_debug_assistant`: troubleshooting
- `letta_tool_config`: tool discovery, attachment, creation and audit
- `letta_migration`: export, import, upgrade and clone

## Resources
- `letta://system/status`: health check
- `letta://system/models`: available models
- `letta://system/mcp-servers`: MCP server list
- `letta://agents/list`: all agents overview
- `letta://tools/all/docs`: documentation for every tool

## Troubleshooting
If an agent is not responding:
1. Check it with `retrieve_agent` or `get_agent_summary`
2. Verify its memory blocks with `list_memory_blocks`
3. Check its tools with `list_agent_tools`
4. Run the `letta_debug_assistant` prompt
"""

API_REFERENCE = """# Letta API Quick Reference

All endpoints live under `/v1` on the Letta server.

## Authentication
```
Authorization: Bearer <password>
X-BARE-PASSWORD: password <password>
```

## Agents
- GET /agents/ - List agents
- POST /agents/ - Create agent
- GET /agents/{id} - Get agent
- PATCH /agents/{id} - Update agent
- DELETE /agents/{id} - Delete agent
- GET /agents/{id}/export - Export agent
- POST /agents/import - Import agent (multipart)

## Memory
- GET /agents/{id}/core-memory/blocks - List an agent's blocks
- PATCH /agents/{id}/core-memory/blocks/attach/{block_id} - Attach block
- GET /agents/{id}/archival-memory - List passages
- POST /agents/{id}/archival-memory - Create passage
- PATCH /agents/{id}/archival-memory/{passage_id} - Update passage
- DELETE /agents/{id}/archival-memory/{passage_id} - Delete passage

## Messages
- POST /agents/{id}/messages/stream - Send a message and stream the reply

## Tools
- GET /tools/ - List tools
- POST /tools/ - Create tool
- PATCH /agents/{id}/tools/attach/{tool_id} - Attach tool

## MCP Integration
- GET /tools/mcp/servers - List MCP servers
- GET /tools/mcp/servers/{name}/tools - List a server's tools
- POST /tools/mcp/servers/{name}/{tool} - Register an MCP tool
"""


# ── Registration ──────────────────────────────────────────────────────────

TEMPLATES = [
    ResourceTemplateEntry(
        uriTemplate="letta://agents/{agent_id}/config",
        name="agent_config",
        title="Agent Configuration",
        description="Access full configuration for a specific Letta agent",
    ),
    ResourceTemplateEntry(
        uriTemplate="letta://agents/{agent_id}/memory/{block_id}",
        name="memory_block",
        title="Memory Block Content",
        description="Access specific memory block content for an agent",
    ),
    ResourceTemplateEntry(
        uriTemplate="letta://tools/{tool_name}/docs",
        name="tool_documentation",
        title="Tool Documentation",
        description="Detailed documentation for a specific tool",
        mimeType=MARKDOWN,
    ),
]


def register_resources(registry: Registry, server) -> None:
    """Register the built-in templates and resources; handlers close over ``server``."""
    for template in TEMPLATES:
        registry.register_template(template)

    resources = [
        ResourceEntry(
            uri="letta://system/status",
            name="system_status",
            title="Letta System Status",
            description="Current status of the Letta system including version and health",
            handler=lambda: system_status(server),
        ),
        ResourceEntry(
            uri="letta://system/models",
            name="available_models",
            title="Available Models",
            description="List of available LLM and embedding models in the system",
            handler=lambda: available_models(server),
        ),
        ResourceEntry(
            uri="letta://system/mcp-servers",
            name="mcp_servers",
            title="Available MCP Servers",
            description="List of connected MCP servers and their capabilities",
            handler=lambda: mcp_servers(server),
        ),
        ResourceEntry(
            uri="letta://agents/list",
            name="agent_list",
            title="All Letta Agents",
            description="Complete list of all agents in the system with basic metadata",
            handler=lambda: agent_list(server),
        ),
        ResourceEntry(
            uri="letta://tools/all/docs",
            name="all_tools_docs",
            title="All Tools Documentation",
            description="Complete documentation for all available tools",
            mimeType=MARKDOWN,
            handler=lambda: all_tools_docs(server),
        ),
        ResourceEntry(
            uri="letta://docs/mcp-integration",
            name="mcp_integration_docs",
            title="MCP Integration Documentation",
            description="Documentation for integrating MCP tools with Letta agents",
            mimeType=MARKDOWN,
            handler=lambda: {"text": MCP_INTEGRATION_DOCS},
        ),
        ResourceEntry(
            uri="letta://docs/api-reference",
            name="api_reference",
            title="Letta API Quick Reference",
            description="Quick reference for common Letta API operations",
            mimeType=MARKDOWN,
            handler=lambda: {"text": API_REFERENCE},
        ),
    ]
    for resource in resources:
        registry.register_resource(resource)
