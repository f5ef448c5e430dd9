"""Tests for the server: tool dispatch, result envelopes and the MCP binding."""

import json

import mcp.types as types
import pytest
from mcp.shared.exceptions import McpError

from conftest import api_error, payload
from letta_mcp.core.errors import ValidationError
from letta_mcp.core.server import LettaServer, error_response
from letta_mcp.registry.schema import ToolDefinition
from letta_mcp.validation.config import LettaMCPConfig


class TestRegistration:
    """Tests for the default catalogue."""

    def test_defaults_registered(self, server):
        """Test tools, prompts, resources and templates are all present."""
        assert len(server.registry.tools) == 31
        assert len(server.registry.prompts) == 5
        assert len(server.registry.resources) == 7
        assert len(server.registry.templates) == 3

    def test_disabled_prompts_and_resources(self, api):
        """Test prompt and resource registration honours the config flags."""
        config = LettaMCPConfig(
            letta={"base_url": "http://letta.test"},
            prompts={"enabled": False},
            resources={"enabled": False},
        )
        app = LettaServer(config, api=api)
        app.register_defaults()

        assert len(app.registry.prompts) == 0
        assert len(app.registry.resources) == 0
        assert len(app.registry.tools) == 31

    def test_tool_names_unique(self, server):
        """Test every advertised tool has a distinct name."""
        names = [t["name"] for t in server.list_tools()]
        assert len(names) == len(set(names))

    def test_list_tools_shape(self, server):
        """Test annotations and output schemas are advertised."""
        tools = {t["name"]: t for t in server.list_tools()}

        assert tools["delete_agent"]["annotations"]["destructiveHint"] is True
        assert tools["list_agents"]["annotations"]["readOnlyHint"] is True
        assert "outputSchema" in tools["create_agent"]
        assert "outputSchema" not in tools["list_agents"]
        for tool in tools.values():
            assert tool["inputSchema"]["type"] == "object"


class TestCallTool:
    """Tests for tool dispatch and error envelopes."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, server):
        """Test an unknown tool name yields a not_found envelope."""
        result = await server.call_tool("no_such_tool", {})

        assert result["isError"] is True
        body = payload(result)
        assert body["error"] == "Unknown tool: no_such_tool"
        assert body["error_kind"] == "not_found"

    @pytest.mark.asyncio
    async def test_validation_error_envelope(self, server, api):
        """Test a missing argument fails before any upstream call."""
        result = await server.call_tool("retrieve_agent", {})

        assert result["isError"] is True
        assert payload(result)["error_kind"] == "validation_error"
        assert payload(result)["error"] == "Missing required argument: agent_id"
        assert api.calls == []

    @pytest.mark.asyncio
    async def test_unmapped_api_error(self, server, api):
        """Test a raw upstream error from a handler is reported as upstream_error with status."""
        async def handler(srv, args):
            raise api_error(500, {"detail": "kaput"})

        server.registry.register_tool(ToolDefinition(name="explode", handler=handler))

        result = await server.call_tool("explode", {})

        body = payload(result)
        assert result["isError"] is True
        assert body["error_kind"] == "upstream_error"
        assert body["error"].startswith("Failed to execute explode")
        assert "Status: 500" in body["error"]

    @pytest.mark.asyncio
    async def test_unexpected_exception_envelope(self, server):
        """Test an arbitrary handler exception still yields an upstream_error envelope."""
        async def handler(srv, args):
            raise KeyError("tools")

        server.registry.register_tool(ToolDefinition(name="broken", handler=handler))

        result = await server.call_tool("broken", {})

        body = payload(result)
        assert result["isError"] is True
        assert body["error_kind"] == "upstream_error"
        assert body["error"] == "Failed to execute broken: 'tools'"

    @pytest.mark.asyncio
    async def test_success_passthrough(self, server):
        """Test a handler's envelope is returned unchanged."""
        envelope = {"content": [{"type": "text", "text": "ok"}]}
        server.registry.register_tool(ToolDefinition(name="ok", handler=lambda srv, args: envelope))

        assert await server.call_tool("ok", None) == envelope

    def test_error_response(self):
        """Test the isError envelope carries the error as JSON text."""
        result = error_response(ValidationError("bad", details={"field": "x"}))

        assert result["isError"] is True
        assert json.loads(result["content"][0]["text"]) == {
            "success": False,
            "error": "bad",
            "error_kind": "validation_error",
            "details": {"field": "x"},
        }


class TestProtocolBinding:
    """Tests for the low-level MCP request handlers."""

    @pytest.mark.asyncio
    async def test_list_prompts_request(self, server):
        """Test prompts/list is served from the registry."""
        handler = server.mcp.request_handlers[types.ListPromptsRequest]

        result = await handler(types.ListPromptsRequest(method="prompts/list"))

        names = [p.name for p in result.root.prompts]
        assert "letta_agent_wizard" in names

    @pytest.mark.asyncio
    async def test_get_unknown_prompt_is_protocol_error(self, server):
        """Test prompt failures surface as MCP errors, not envelopes."""
        handler = server.mcp.request_handlers[types.GetPromptRequest]
        request = types.GetPromptRequest(
            method="prompts/get",
            params=types.GetPromptRequestParams(name="missing"),
        )

        with pytest.raises(McpError) as excinfo:
            await handler(request)
        assert "Unknown prompt: missing" in excinfo.value.error.message

    @pytest.mark.asyncio
    async def test_call_tool_request(self, server):
        """Test tools/call wraps error envelopes in a CallToolResult."""
        handler = server.mcp.request_handlers[types.CallToolRequest]
        request = types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(name="retrieve_agent", arguments={}),
        )

        result = await handler(request)

        assert result.root.isError is True

    def test_capabilities(self, server):
        """Test list-changed notifications and subscriptions are advertised."""
        options = server.initialization_options()

        assert options.capabilities.prompts.listChanged is True
        assert options.capabilities.resources.listChanged is True
        assert options.capabilities.resources.subscribe is True

    @pytest.mark.asyncio
    async def test_notifications_without_session(self, server):
        """Test notifications outside a request are silently skipped."""
        await server.notify_prompts_changed()
        await server.notify_resources_changed()
        await server.notify_resource_updated("letta://system/status")

    @pytest.mark.asyncio
    async def test_unknown_transport(self, server):
        """Test run() rejects an unknown transport."""
        with pytest.raises(ValueError, match="Unknown transport"):
            await server.run("pigeon")
