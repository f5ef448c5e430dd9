"""Built-in prompts and resources."""

from letta_mcp.library.prompts import register_prompts
from letta_mcp.library.resources import register_resources

__all__ = ["register_prompts", "register_resources"]
