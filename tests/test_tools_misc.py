"""Tests for memory block, tool attachment and model tools."""

import pytest

from conftest import payload
from letta_mcp.core.errors import UpstreamError, ValidationError
from letta_mcp.tools.attach import attach_tool, upload_tool
from letta_mcp.tools.memory import create_memory_block, list_memory_blocks, update_memory_block


class TestMemoryBlocks:
    """Tests for core memory block tools."""

    @pytest.mark.asyncio
    async def test_list_agent_blocks_with_filter(self, server, api):
        """Test agent-scoped listing, filtering and value previews."""
        api.on("GET", "/agents/agent-1/core-memory/blocks", [
            {"id": "b1", "label": "persona", "value": "v" * 300},
            {"id": "b2", "label": "human", "value": "Alice"},
        ])

        result = payload(await list_memory_blocks(server, {"agent_id": "agent-1", "filter": "persona"}))

        assert api.calls_to("GET", "/agents/agent-1/core-memory/blocks")[0]["params"] == {"templates_only": "false"}
        assert len(result["blocks"]) == 1
        assert result["blocks"][0]["value_preview"] == "v" * 200 + "..."
        assert "pagination" not in result

    @pytest.mark.asyncio
    async def test_list_pagination_when_needed(self, server, api):
        api.on("GET", "/blocks", [{"id": f"b{i}", "label": "l", "value": ""} for i in range(12)])

        result = payload(await list_memory_blocks(server, {"pageSize": 5, "page": 3}))

        assert len(result["blocks"]) == 2
        assert result["pagination"] == {"page": 3, "pageSize": 5, "totalBlocks": 12, "totalPages": 3}

    @pytest.mark.asyncio
    async def test_update_requires_something(self, server, api):
        with pytest.raises(ValidationError, match="Either value or metadata"):
            await update_memory_block(server, {"block_id": "b1"})

    @pytest.mark.asyncio
    async def test_create_and_attach(self, server, api):
        """Test a new block is attached when agent_id is given."""
        api.on("POST", "/blocks", {"id": "b9"})
        api.on("PATCH", "/agents/agent-1/core-memory/blocks/attach/b9", {})
        api.on("GET", "/agents/agent-1", {"name": "helper"})

        result = payload(await create_memory_block(server, {
            "name": "notes", "label": "notes", "value": "remember", "agent_id": "agent-1",
        }))

        sent = api.calls_to("POST", "/blocks")[0]["json"]
        assert sent["metadata"]["type"] == "notes"
        assert result == {
            "block_id": "b9", "name": "notes", "label": "notes", "agent_id": "agent-1", "agent_name": "helper",
        }

    @pytest.mark.asyncio
    async def test_create_without_id(self, server, api):
        """Test a create reply lacking an id fails before any attach."""
        api.on("POST", "/blocks", {})

        with pytest.raises(UpstreamError, match="memory block"):
            await create_memory_block(server, {"name": "n", "label": "l", "value": "v", "agent_id": "agent-1"})
        assert [c for c in api.calls if c[0] == "PATCH"] == []


class TestAttachTool:
    """Tests for attach_tool and upload_tool."""

    @pytest.mark.asyncio
    async def test_attach_by_id_and_name(self, server, api):
        """Test ids and names are resolved and each attachment is reported."""
        api.on("GET", "/agents/agent-1", {"name": "helper"})
        api.on("GET", "/tools/t1", {"id": "t1", "name": "search"})
        api.on("GET", "/tools/", [{"id": "t2", "name": "fetch"}])
        api.on("GET", "/tools/mcp/servers", {})
        api.on("PATCH", "/agents/agent-1/tools/attach/t1", {"tools": [{"id": "t1"}, {"id": "t2"}]})
        api.on("PATCH", "/agents/agent-1/tools/attach/t2", {"tools": [{"id": "t1"}, {"id": "t2"}]})

        result = await attach_tool(server, {"agent_id": "agent-1", "tool_id": "t1", "tool_names": ["fetch"]})

        body = payload(result)
        assert "isError" not in result
        assert [a["tool_id"] for a in body["attachment_summary"]] == ["t1", "t2"]
        assert all(a["success"] for a in body["attachment_summary"])

    @pytest.mark.asyncio
    async def test_unknown_name_is_error(self, server, api):
        api.on("GET", "/agents/agent-1", {"name": "helper"})
        api.on("GET", "/tools/", [])
        api.on("GET", "/tools/mcp/servers", {})

        result = await attach_tool(server, {"agent_id": "agent-1", "tool_names": ["ghost"]})

        assert result["isError"] is True
        assert payload(result)["processing_summary"][0]["status"] == "not_found"

    @pytest.mark.asyncio
    async def test_requires_tools(self, server):
        with pytest.raises(ValidationError):
            await attach_tool(server, {"agent_id": "agent-1"})

    @pytest.mark.asyncio
    async def test_upload_replaces_existing(self, server, api):
        """Test a same-named tool is deleted before the new one is created."""
        api.on("GET", "/tools/", [{"id": "old", "name": "adder"}])
        api.on("DELETE", "/tools/old")
        api.on("POST", "/tools/", {"id": "new", "name": "adder"})

        await upload_tool(server, {
            "name": "adder",
            "description": "Adds numbers",
            "source_code": "def adder(a: int, b: int) -> int:\n    return a + b\n",
        })

        assert len(api.calls_to("DELETE", "/tools/old")) == 1
        created = api.calls_to("POST", "/tools/")[0]["json"]
        assert created["source_type"] == "python"
        assert created["description"] == "Adds numbers"

    @pytest.mark.asyncio
    async def test_upload_without_id(self, server, api):
        """Test a create reply lacking an id is an upstream error, not an attach to None."""
        api.on("GET", "/tools/", [])
        api.on("POST", "/tools/", "created")

        with pytest.raises(UpstreamError, match="did not return an ID"):
            await upload_tool(server, {
                "name": "adder", "description": "Adds", "source_code": "def adder(): pass", "agent_id": "agent-1",
            })
        assert [c for c in api.calls if c[0] == "PATCH"] == []


class TestModels:
    """Tests for the model catalogue tools."""

    @pytest.mark.asyncio
    async def test_llm_models(self, server, api):
        api.on("GET", "/models/", [{"model": "gpt-4"}, {"model": "letta-free"}])

        result = payload(await server.call_tool("list_llm_models", {}))

        assert result["model_count"] == 2
