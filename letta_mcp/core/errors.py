"""Error taxonomy shared by registries, tool handlers and the protocol binding."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Category of a failure, so callers can branch without parsing messages."""

    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    UPSTREAM = "upstream_error"
    COMPENSATION = "compensation_failure"


class ToolError(Exception):
    """Base class for failures reported back to MCP clients."""

    kind: ErrorKind = ErrorKind.UPSTREAM

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": self.message,
            "error_kind": self.kind.value,
            "details": self.details,
        }


class ValidationError(ToolError):
    """A required argument is missing, empty or of the wrong type."""

    kind = ErrorKind.VALIDATION


class NotFoundError(ToolError):
    """A prompt, resource, agent, tool or passage does not exist."""

    kind = ErrorKind.NOT_FOUND


class SourceAgentNotFound(NotFoundError):
    pass


class PassageNotFound(NotFoundError):
    pass


class ToolNotFound(NotFoundError):
    pass


class UpstreamError(ToolError):
    """The Letta API answered with a non-2xx status or could not be reached."""

    kind = ErrorKind.UPSTREAM

    def __init__(self, message: str, status: Optional[int] = None, details: Any = None):
        super().__init__(message, details=details)
        self.status = status


class InvalidExportData(UpstreamError):
    pass


class IncompletePassageRecord(UpstreamError):
    pass


class CloneFailed(UpstreamError):
    pass


class CompensationFailure(ToolError):
    """A cleanup step failed. Logged, never raised over the original error."""

    kind = ErrorKind.COMPENSATION


def api_error(
    exc: Any,
    context: str,
    not_found: Optional[str] = None,
    invalid: Optional[str] = None,
) -> ToolError:
    """
    Map a ``LettaAPIError`` onto the taxonomy.

    404 becomes ``NotFoundError(not_found)`` and 422 becomes
    ``ValidationError(invalid: <body>)`` when the matching message is given.
    Everything else is an ``UpstreamError`` with status and body appended.
    """
    status = getattr(exc, "status", None)
    data = getattr(exc, "data", None)

    if status == 404 and not_found:
        return NotFoundError(not_found, details=data)
    if status == 422 and invalid:
        return ValidationError(f"{invalid}: {json.dumps(data)}", details=data)

    message = f"{context}: {exc}"
    if status is not None:
        message += f" (Status: {status}, Data: {json.dumps(data)})"
    return UpstreamError(message, status=status, details=data)
