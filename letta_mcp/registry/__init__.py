"""Prompt, resource, template and tool registries plus their protocol handlers."""

from letta_mcp.registry.schema import (
    PromptArgument,
    PromptEntry,
    ResourceEntry,
    ResourceTemplateEntry,
    ToolDefinition,
)
from letta_mcp.registry.store import EntryStore, Registry, SubscriptionStore

__all__ = [
    "EntryStore",
    "PromptArgument",
    "PromptEntry",
    "Registry",
    "ResourceEntry",
    "ResourceTemplateEntry",
    "SubscriptionStore",
    "ToolDefinition",
]
