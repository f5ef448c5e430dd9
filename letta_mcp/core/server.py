"""
Letta MCP server - dispatches MCP requests to registries and tool handlers.

Tool calls always produce a result envelope. Failures raised by a handler
are converted into an ``isError`` envelope carrying the error kind, so the
calling model sees what went wrong without the protocol call failing.
Prompt and resource failures are reported as protocol errors instead.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import mcp.types as types
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.shared.exceptions import McpError
from pydantic import AnyUrl

from letta_mcp.core.client import LettaAPIError, LettaClient
from letta_mcp.core.errors import NotFoundError, ToolError, UpstreamError, api_error
from letta_mcp.registry import handlers
from letta_mcp.registry.store import Registry
from letta_mcp.validation.config import Config, LettaMCPConfig

logger = logging.getLogger(__name__)


def error_response(exc: ToolError) -> Dict[str, Any]:
    """Uniform ``isError`` tool result for ``exc``."""
    return {
        "content": [{"type": "text", "text": json.dumps(exc.to_dict())}],
        "isError": True,
    }


def to_mcp_error(exc: ToolError) -> McpError:
    """Protocol-level error for prompt and resource requests."""
    return McpError(
        types.ErrorData(
            code=types.INVALID_PARAMS,
            message=exc.message,
            data={"error_kind": exc.kind.value},
        )
    )


class LettaServer:
    """
    Owns the registry, the Letta API client and the MCP protocol binding.

    Tool handlers receive this object and use ``server.api`` for every
    upstream call and ``server.config`` for settings such as timeouts.
    """

    def __init__(
        self,
        config: LettaMCPConfig,
        api: Optional[LettaClient] = None,
        registry: Optional[Registry] = None,
    ):
        self.config = config
        self.api = api or LettaClient(
            base_url=config.letta.base_url or "",
            password=config.letta.password,
            timeout=config.letta.timeout,
        )
        self.registry = registry if registry is not None else Registry()
        self.mcp = self.build_mcp_server()

    # ── Registration ──────────────────────────────────────────────────────

    def register_defaults(self) -> None:
        """Register the tool catalogue, and prompts and resources when enabled."""
        from letta_mcp.library import register_prompts, register_resources
        from letta_mcp.tools import register_tools

        register_tools(self.registry)
        if self.config.prompts.enabled:
            register_prompts(self.registry)
        if self.config.resources.enabled:
            register_resources(self.registry, self)

        logger.info(
            "Registered %d tools, %d prompts, %d resources, %d resource templates",
            len(self.registry.tools),
            len(self.registry.prompts),
            len(self.registry.resources),
            len(self.registry.templates),
        )

    # ── Tools ─────────────────────────────────────────────────────────────

    def list_tools(self) -> List[Dict[str, Any]]:
        return [tool.to_mcp() for tool in self.registry.tools.list()]

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a registered tool and return its result envelope."""
        tool = self.registry.tools.get(name)
        if tool is None:
            return error_response(NotFoundError(f"Unknown tool: {name}"))

        logger.debug("Calling tool %s", name)
        try:
            return await handlers.resolve(tool.handler(self, arguments or {}))
        except ToolError as exc:
            logger.warning("Tool %s failed: %s", name, exc.message)
            return error_response(exc)
        except LettaAPIError as exc:
            logger.warning("Tool %s failed upstream: %s", name, exc)
            return error_response(api_error(exc, f"Failed to execute {name}"))
        except Exception as exc:
            logger.exception("Tool %s raised an unexpected error", name)
            return error_response(UpstreamError(f"Failed to execute {name}: {exc}"))

    # ── Notifications ─────────────────────────────────────────────────────

    def _session(self):
        try:
            return self.mcp.request_context.session
        except LookupError:
            return None

    async def notify_prompts_changed(self) -> None:
        session = self._session()
        if session is None:
            return
        try:
            await session.send_prompt_list_changed()
        except Exception as exc:
            logger.warning("Failed to send prompts/list_changed: %s", exc)

    async def notify_resources_changed(self) -> None:
        session = self._session()
        if session is None:
            return
        try:
            await session.send_resource_list_changed()
        except Exception as exc:
            logger.warning("Failed to send resources/list_changed: %s", exc)

    async def notify_resource_updated(self, uri: str) -> None:
        session = self._session()
        if session is None:
            return
        try:
            await session.send_resource_updated(AnyUrl(uri))
        except Exception as exc:
            logger.warning("Failed to send resources/updated for %s: %s", uri, exc)

    # ── MCP binding ───────────────────────────────────────────────────────

    def build_mcp_server(self) -> Server:
        """Create the low-level MCP server with every request handler wired to the registry."""
        from letta_mcp import __version__

        app: Server = Server(self.config.server.name, version=__version__)
        registry = self.registry

        async def _list_prompts(req: types.ListPromptsRequest) -> types.ServerResult:
            cursor = req.params.cursor if req.params else None
            result = handlers.list_prompts(registry, cursor)
            return types.ServerResult(types.ListPromptsResult.model_validate(result))

        async def _get_prompt(req: types.GetPromptRequest) -> types.ServerResult:
            try:
                result = await handlers.get_prompt(registry, req.params.name, req.params.arguments)
            except ToolError as exc:
                raise to_mcp_error(exc)
            return types.ServerResult(types.GetPromptResult.model_validate(result))

        async def _list_resources(req: types.ListResourcesRequest) -> types.ServerResult:
            cursor = req.params.cursor if req.params else None
            result = handlers.list_resources(registry, cursor)
            return types.ServerResult(types.ListResourcesResult.model_validate(result))

        async def _read_resource(req: types.ReadResourceRequest) -> types.ServerResult:
            try:
                result = await handlers.read_resource(registry, str(req.params.uri))
            except ToolError as exc:
                raise to_mcp_error(exc)
            return types.ServerResult(types.ReadResourceResult.model_validate(result))

        async def _subscribe(req: types.SubscribeRequest) -> types.ServerResult:
            try:
                handlers.subscribe(registry, str(req.params.uri))
            except ToolError as exc:
                raise to_mcp_error(exc)
            return types.ServerResult(types.EmptyResult())

        async def _unsubscribe(req: types.UnsubscribeRequest) -> types.ServerResult:
            try:
                handlers.unsubscribe(registry, str(req.params.uri))
            except ToolError as exc:
                raise to_mcp_error(exc)
            return types.ServerResult(types.EmptyResult())

        async def _list_templates(req: types.ListResourceTemplatesRequest) -> types.ServerResult:
            result = handlers.list_resource_templates(registry)
            return types.ServerResult(types.ListResourceTemplatesResult.model_validate(result))

        async def _list_tools(req: types.ListToolsRequest) -> types.ServerResult:
            return types.ServerResult(types.ListToolsResult.model_validate({"tools": self.list_tools()}))

        async def _call_tool(req: types.CallToolRequest) -> types.ServerResult:
            result = await self.call_tool(req.params.name, req.params.arguments)
            return types.ServerResult(types.CallToolResult.model_validate(result))

        app.request_handlers[types.ListPromptsRequest] = _list_prompts
        app.request_handlers[types.GetPromptRequest] = _get_prompt
        app.request_handlers[types.ListResourcesRequest] = _list_resources
        app.request_handlers[types.ReadResourceRequest] = _read_resource
        app.request_handlers[types.SubscribeRequest] = _subscribe
        app.request_handlers[types.UnsubscribeRequest] = _unsubscribe
        app.request_handlers[types.ListResourceTemplatesRequest] = _list_templates
        app.request_handlers[types.ListToolsRequest] = _list_tools
        app.request_handlers[types.CallToolRequest] = _call_tool
        return app

    def initialization_options(self) -> InitializationOptions:
        options = self.mcp.create_initialization_options(
            notification_options=NotificationOptions(prompts_changed=True, resources_changed=True),
        )
        if options.capabilities.resources is not None:
            options.capabilities.resources.subscribe = True
        return options

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def run(self, transport: Optional[str] = None) -> None:
        """Serve over ``transport`` (defaults to the configured one)."""
        from letta_mcp.transports import run_http, run_sse, run_stdio

        transport = transport or self.config.server.transport
        runners = {"stdio": run_stdio, "sse": run_sse, "http": run_http}
        if transport not in runners:
            raise ValueError(f"Unknown transport: {transport}")

        logger.info("Starting %s on %s transport (Letta API: %s)", self.config.server.name, transport, self.api.api_base)
        try:
            await runners[transport](self)
        finally:
            await self.api.aclose()


def create_app(config: Optional[LettaMCPConfig] = None, api: Optional[LettaClient] = None) -> LettaServer:
    """Build a server with the default catalogue registered."""
    if config is None:
        config = Config.load().merged
    server = LettaServer(config, api=api)
    server.register_defaults()
    return server
