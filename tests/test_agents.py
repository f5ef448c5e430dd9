"""Tests for the agent tools."""

import json

import pytest

from conftest import payload
from letta_mcp.core.errors import NotFoundError, UpstreamError, ValidationError
from letta_mcp.tools.agents import (
    NO_MESSAGE_CONTENT,
    create_agent,
    extract_stream_text,
    export_agent,
    get_agent_summary,
    import_agent,
    list_agents,
    modify_agent,
)

AGENT = {
    "id": "agent-1",
    "name": "helper",
    "description": "Helps",
    "system": "x" * 250,
    "llm_config": {"model_endpoint_type": "openai", "model": "gpt-4"},
    "embedding_config": {"handle": "openai/text-embedding-ada-002"},
}


class TestGetAgentSummary:
    """Tests for the aggregated agent summary."""

    @pytest.mark.asyncio
    async def test_full_summary(self, server, api):
        """Test all four collections are combined and long text is truncated."""
        api.on("GET", "/agents/agent-1", AGENT)
        api.on("GET", "/agents/agent-1/core-memory/blocks", [
            {"label": "persona", "value": "p" * 150},
            {"label": "human", "value": "short"},
        ])
        api.on("GET", "/agents/agent-1/tools", [{"id": "t1", "name": "send_message", "tool_type": "letta_core"}])
        api.on("GET", "/agents/agent-1/sources", [{"id": "s1", "name": "docs"}])

        result = payload(await get_agent_summary(server, {"agent_id": "agent-1"}))

        assert result["system_prompt_snippet"] == "x" * 200 + "..."
        assert result["core_memory_blocks"] == [
            {"label": "persona", "value_snippet": "p" * 100 + "..."},
            {"label": "human", "value_snippet": "short"},
        ]
        assert result["llm_config"] == "openai/gpt-4"
        assert result["embedding_config"] == "openai/text-embedding-ada-002"
        assert result["attached_tools"] == [{"id": "t1", "name": "send_message", "type": "letta_core"}]
        assert result["attached_sources_count"] == 1

    @pytest.mark.asyncio
    async def test_auxiliary_failures_degrade(self, server, api):
        """Test failing blocks, tools and sources calls become empty lists."""
        api.on("GET", "/agents/agent-1", AGENT)
        api.fail("GET", "/agents/agent-1/core-memory/blocks", 500)
        api.on("GET", "/agents/agent-1/tools", {"unexpected": "shape"})

        result = payload(await get_agent_summary(server, {"agent_id": "agent-1"}))

        assert result["name"] == "helper"
        assert result["core_memory_blocks"] == []
        assert result["attached_tools"] == []
        assert result["attached_sources"] == []

    @pytest.mark.asyncio
    async def test_malformed_items_skipped(self, server, api):
        """Test null or non-object entries in auxiliary lists are ignored."""
        api.on("GET", "/agents/agent-1", AGENT)
        api.on("GET", "/agents/agent-1/core-memory/blocks", [None, {"label": "human", "value": "Bob"}])
        api.on("GET", "/agents/agent-1/tools", ["send_message"])
        api.on("GET", "/agents/agent-1/sources", [])

        result = payload(await get_agent_summary(server, {"agent_id": "agent-1"}))

        assert result["core_memory_blocks"] == [{"label": "human", "value_snippet": "Bob"}]
        assert result["attached_tools_count"] == 0

    @pytest.mark.asyncio
    async def test_agent_missing(self, server, api):
        """Test only the agent fetch is mandatory."""
        with pytest.raises(NotFoundError, match="Agent not found: ghost"):
            await get_agent_summary(server, {"agent_id": "ghost"})


class TestAgentCrud:
    """Tests for listing, creating and modifying agents."""

    @pytest.mark.asyncio
    async def test_list_filter(self, server, api):
        """Test the text filter matches name or description case-insensitively."""
        api.on("GET", "/agents/", [
            {"id": "1", "name": "Alpha", "description": "x"},
            {"id": "2", "name": "b", "description": "the ALPHA helper"},
            {"id": "3", "name": "c", "description": None},
        ])

        result = payload(await list_agents(server, {"filter": "alpha"}))

        assert result["count"] == 2
        assert [a["id"] for a in result["agents"]] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_create_agent(self, server, api):
        """Test creation posts the config and reports the tool names as structured content."""
        api.on("POST", "/agents/", {"id": "agent-7"})
        api.on("GET", "/agents/agent-7", {"id": "agent-7", "tools": [{"name": "send_message"}]})

        result = await create_agent(server, {"name": "n", "description": "d", "model": "letta/letta-free"})

        body = api.calls_to("POST", "/agents/")[0]["json"]
        assert body["llm_config"]["model_endpoint"] == "https://inference.letta.com"
        assert result["structuredContent"] == {"agent_id": "agent-7", "capabilities": ["send_message"]}

    @pytest.mark.asyncio
    async def test_create_without_id(self, server, api):
        """Test a create reply lacking an id fails before fetching the agent."""
        api.on("POST", "/agents/", {"name": "n"})

        with pytest.raises(UpstreamError, match="did not return an ID"):
            await create_agent(server, {"name": "n", "description": "d"})
        assert [c for c in api.calls if c[0] == "GET"] == []

    @pytest.mark.asyncio
    async def test_modify_requires_update_data(self, server, api):
        """Test an empty update is rejected."""
        with pytest.raises(ValidationError, match="update_data"):
            await modify_agent(server, {"agent_id": "a", "update_data": {}})

    @pytest.mark.asyncio
    async def test_modify_422(self, server, api):
        """Test upstream validation errors name the agent."""
        api.fail("PATCH", "/agents/a", 422, {"detail": "bad"})

        with pytest.raises(ValidationError, match="Validation error updating agent a"):
            await modify_agent(server, {"agent_id": "a", "update_data": {"name": "x"}})


class TestExportImport:
    """Tests for export_agent and import_agent."""

    @pytest.mark.asyncio
    async def test_export_writes_file(self, server, api, tmp_path):
        """Test the export is written and optionally base64 encoded."""
        api.on("GET", "/agents/agent-1/export", {"name": "helper"})
        target = tmp_path / "out.json"

        result = payload(await export_agent(server, {
            "agent_id": "agent-1", "output_path": str(target), "return_base64": True,
        }))

        assert json.loads(target.read_text()) == {"name": "helper"}
        assert result["file_path"] == str(target.resolve())
        assert "base64_data" in result

    @pytest.mark.asyncio
    async def test_import_missing_file(self, server, api, tmp_path):
        """Test a missing file fails before upload."""
        with pytest.raises(NotFoundError, match="File not found at path"):
            await import_agent(server, {"file_path": str(tmp_path / "nope.json")})
        assert api.calls == []

    @pytest.mark.asyncio
    async def test_import_uploads(self, server, api, tmp_path):
        """Test the file is uploaded with boolean flags as strings."""
        source = tmp_path / "agent.json"
        source.write_text('{"name": "helper"}')
        api.on("POST", "/agents/import", {"id": "agent-3"})

        result = payload(await import_agent(server, {"file_path": str(source), "append_copy_suffix": False}))

        call = api.calls_to("POST", "/agents/import")[0]
        assert call["params"] == {"append_copy_suffix": "false"}
        assert call["files"]["file"][0] == "agent.json"
        assert result["agent_id"] == "agent-3"


class TestExtractStreamText:
    """Tests for parsing streamed replies."""

    def test_assistant_message_wins(self):
        stream = "\n".join([
            'data: {"message_type": "reasoning_message", "reasoning": "thinking"}',
            'data: {"message_type": "assistant_message", "content": "Hello!"}',
            "data: [DONE]",
        ])
        assert extract_stream_text(stream) == "Hello!"

    def test_reasoning_fallback(self):
        stream = 'data: {"message_type": "reasoning_message", "reasoning": "hmm"}'
        assert extract_stream_text(stream) == "[Reasoning]: hmm"

    def test_empty(self):
        assert extract_stream_text("") == NO_MESSAGE_CONTENT
