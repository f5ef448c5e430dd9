"""Argument validation and result helpers shared by every tool handler."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote as _quote

from letta_mcp.core.errors import UpstreamError, ValidationError


# ── Arguments ─────────────────────────────────────────────────────────────


def require_string(args: Mapping[str, Any], name: str) -> str:
    """Return a non-empty string argument or raise ``ValidationError`` naming it."""
    value = args.get(name)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Missing required argument: {name}")
    return value


def optional_string(args: Mapping[str, Any], name: str) -> Optional[str]:
    value = args.get(name)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"Invalid argument: {name} must be a string")
    return value


def optional_bool(args: Mapping[str, Any], name: str, default: bool) -> bool:
    value = args.get(name)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValidationError(f"Invalid argument: {name} must be a boolean")
    return value


def optional_int(args: Mapping[str, Any], name: str, default: Optional[int] = None) -> Optional[int]:
    value = args.get(name)
    if value is None:
        return default
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"Invalid argument: {name} must be a number")
    return int(value)


def optional_dict(args: Mapping[str, Any], name: str) -> Optional[Dict[str, Any]]:
    value = args.get(name)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError(f"Invalid argument: {name} must be an object")
    return value


def string_list(args: Mapping[str, Any], name: str) -> List[str]:
    """List-of-strings argument, empty when absent."""
    value = args.get(name)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValidationError(f"Invalid argument: {name} must be an array of strings.")
    return value


# ── Results ───────────────────────────────────────────────────────────────


def text_response(payload: Any, structured: bool = False, is_error: bool = False) -> Dict[str, Any]:
    """Success envelope with ``payload`` serialized as a JSON text block."""
    result: Dict[str, Any] = {"content": [{"type": "text", "text": json.dumps(payload)}]}
    if structured:
        result["structuredContent"] = payload
    if is_error:
        result["isError"] = True
    return result


def strip_embedding(passage: Any) -> Any:
    if not isinstance(passage, dict):
        return passage
    return {k: v for k, v in passage.items() if k != "embedding"}


def as_list(data: Any) -> List[Any]:
    return data if isinstance(data, list) else []


def list_field(data: Any, key: str) -> List[Any]:
    return as_list(data.get(key)) if isinstance(data, dict) else []


def created_id(data: Any, what: str) -> str:
    """Id of a newly created ``what``; a reply without one is an upstream error."""
    created = data.get("id") if isinstance(data, dict) else None
    if not created:
        raise UpstreamError(f"Create {what} succeeded but did not return an ID. Response: {json.dumps(data)}")
    return created


def quote(segment: str) -> str:
    """Percent-encode one URL path segment."""
    return _quote(str(segment), safe="")


def truncate(text: Any, limit: int) -> str:
    text = text if isinstance(text, str) else ""
    return text[:limit] + ("..." if len(text) > limit else "")


def page_slice(items: List[Any], page: int, page_size: int) -> Dict[str, Any]:
    """1-based page of ``items`` with the pagination block tool results report."""
    start = (page - 1) * page_size
    total = len(items)
    total_pages = -(-total // page_size)
    return {
        "items": items[start:start + page_size],
        "pagination": {
            "page": page,
            "pageSize": page_size,
            "total": total,
            "totalPages": total_pages,
            "hasNextPage": page < total_pages,
            "hasPreviousPage": page > 1,
        },
    }
