"""
Protocol handlers for prompts and resources.

Each function reads a registry snapshot and returns the plain result
mapping for one MCP request. Failures are raised as ``ValidationError``
or ``NotFoundError``; the server binding converts them to protocol errors.
"""

from __future__ import annotations

import inspect
import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple, TypeVar

from letta_mcp.core.errors import NotFoundError, ValidationError
from letta_mcp.registry.store import Registry

logger = logging.getLogger(__name__)

PROMPTS_PAGE_SIZE = 20
RESOURCES_PAGE_SIZE = 50

# Subscriptions carry no per-client identity yet.
DEFAULT_SUBSCRIBER = "client"

T = TypeVar("T")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


async def resolve(value: Any) -> Any:
    """Await ``value`` if a handler returned an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


# ── Pagination ────────────────────────────────────────────────────────────


def parse_cursor(cursor: Optional[str]) -> int:
    """Start offset for ``cursor``: its leading integer, 0 when absent or unparsable, never negative."""
    if not cursor:
        return 0
    match = _LEADING_INT.match(str(cursor))
    if not match:
        return 0
    return max(int(match.group(1)), 0)


def paginate(items: Sequence[T], cursor: Optional[str], page_size: int) -> Tuple[List[T], Optional[str]]:
    """Slice one page. ``nextCursor`` is returned iff ``start + page_size < len(items)``."""
    start = parse_cursor(cursor)
    page = list(items[start:start + page_size])
    next_cursor = str(start + page_size) if start + page_size < len(items) else None
    return page, next_cursor


# ── Prompts ───────────────────────────────────────────────────────────────


def list_prompts(registry: Registry, cursor: Optional[str] = None) -> Dict[str, Any]:
    page, next_cursor = paginate(registry.prompts.list(), cursor, PROMPTS_PAGE_SIZE)
    result: Dict[str, Any] = {"prompts": [entry.public() for entry in page]}
    if next_cursor is not None:
        result["nextCursor"] = next_cursor
    return result


async def get_prompt(
    registry: Registry,
    name: Optional[str],
    arguments: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Run a prompt's handler with ``arguments`` (default ``{}``)."""
    if not name:
        raise ValidationError("Missing required parameter: name")

    entry = registry.prompts.get(name)
    if entry is None:
        raise NotFoundError(f"Unknown prompt: {name}")

    messages = await resolve(entry.handler(arguments or {}))
    return {"description": entry.description, "messages": list(messages)}


# ── Resources ─────────────────────────────────────────────────────────────


def list_resources(registry: Registry, cursor: Optional[str] = None) -> Dict[str, Any]:
    page, next_cursor = paginate(registry.resources.list(), cursor, RESOURCES_PAGE_SIZE)
    result: Dict[str, Any] = {"resources": [entry.public() for entry in page]}
    if next_cursor is not None:
        result["nextCursor"] = next_cursor
    return result


async def read_resource(registry: Registry, uri: Optional[str]) -> Dict[str, Any]:
    """Invoke the resource handler and wrap its ``{text}`` or ``{blob}`` in ``contents[0]``."""
    if not uri:
        raise ValidationError("Missing required parameter: uri")

    entry = registry.resources.get(uri)
    if entry is None:
        raise NotFoundError(f"Resource not found: {uri}")

    content = await resolve(entry.handler())
    item: Dict[str, Any] = {
        "uri": entry.uri,
        "name": entry.name,
        "title": entry.title,
        "mimeType": entry.mimeType,
        **(content or {}),
    }
    if entry.annotations is not None:
        item["annotations"] = entry.annotations
    return {"contents": [item]}


def list_resource_templates(registry: Registry) -> Dict[str, Any]:
    """All templates, unpaginated. Advertise-only: templated URIs are not resolvable."""
    return {"resourceTemplates": [entry.public() for entry in registry.templates.list()]}


# ── Subscriptions ─────────────────────────────────────────────────────────


def subscribe(registry: Registry, uri: Optional[str], subscriber: str = DEFAULT_SUBSCRIBER) -> Dict[str, Any]:
    if not uri:
        raise ValidationError("Missing required parameter: uri")
    if uri not in registry.resources:
        raise NotFoundError(f"Resource not found: {uri}")

    registry.subscriptions.add(uri, subscriber)
    logger.debug("Subscribed %s to %s", subscriber, uri)
    return {}


def unsubscribe(registry: Registry, uri: Optional[str], subscriber: str = DEFAULT_SUBSCRIBER) -> Dict[str, Any]:
    """Remove a subscription. Unknown URIs and subscribers are a no-op."""
    if not uri:
        raise ValidationError("Missing required parameter: uri")

    if registry.subscriptions.remove(uri, subscriber):
        logger.debug("Unsubscribed %s from %s", subscriber, uri)
    return {}
