"""
Letta MCP - Model Context Protocol bridge for the Letta agent platform.

Exposes a remote Letta server's REST API as MCP tools, prompts and
resources. Every MCP call is looked up in an in-process registry and
forwarded to the Letta API through a single injected HTTP client.

Architecture:
- Registries hold prompts, resources, templates, subscriptions and tools
- Protocol handlers turn registry content into MCP list/get/subscribe replies
- Tool handlers call the Letta API and return uniform result envelopes
- Transports: stdio, SSE and streamable HTTP
"""

__version__ = "1.1.0"
__license__ = "Apache-2.0"

from letta_mcp.core.server import LettaServer, create_app
from letta_mcp.registry.store import Registry

__all__ = [
    "LettaServer",
    "Registry",
    "create_app",
    "__version__",
]
