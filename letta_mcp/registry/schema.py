"""Data models for registered prompts, resources, resource templates and tools."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PromptArgument(BaseModel):
    """A single argument accepted by a prompt."""

    name: str
    title: Optional[str] = None
    description: str = ""
    required: bool = False


class PromptEntry(BaseModel):
    """A named template that produces conversation messages."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = ""
    title: Optional[str] = None
    description: str = ""
    arguments: List[PromptArgument] = Field(default_factory=list)
    handler: Optional[Callable[..., Any]] = Field(default=None, exclude=True)

    def public(self) -> Dict[str, Any]:
        """Fields advertised by ``prompts/list``."""
        return {
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "arguments": [a.model_dump(exclude_none=True) for a in self.arguments],
        }


class ResourceEntry(BaseModel):
    """A URI with read-only content produced on demand by ``handler``."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    uri: str = ""
    name: str = ""
    title: Optional[str] = None
    description: str = ""
    mimeType: str = "application/json"
    size: Optional[int] = None
    annotations: Optional[Dict[str, Any]] = None
    handler: Optional[Callable[..., Any]] = Field(default=None, exclude=True)

    def public(self) -> Dict[str, Any]:
        """Fields advertised by ``resources/list``. size and annotations only when set."""
        data = {
            "uri": self.uri,
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "mimeType": self.mimeType,
        }
        if self.size is not None:
            data["size"] = self.size
        if self.annotations is not None:
            data["annotations"] = self.annotations
        return data


class ResourceTemplateEntry(BaseModel):
    """Descriptive metadata for a parameterized URI such as ``letta://agents/{agent_id}/config``."""

    uriTemplate: str = ""
    name: str = ""
    title: Optional[str] = None
    description: str = ""
    mimeType: str = "application/json"

    def public(self) -> Dict[str, Any]:
        return self.model_dump()


class ToolDefinition(BaseModel):
    """
    An invokable tool: JSON-schema contract plus the coroutine that runs it.

    ``handler`` is called as ``handler(server, arguments)`` and may be sync
    or async. It returns an MCP tool result mapping.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = ""
    title: Optional[str] = None
    description: str = ""
    input_schema: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})
    output_schema: Optional[Dict[str, Any]] = None
    read_only: Optional[bool] = None
    destructive: Optional[bool] = None
    idempotent: Optional[bool] = None
    handler: Optional[Callable[..., Any]] = Field(default=None, exclude=True)

    def annotations(self) -> Dict[str, bool]:
        hints = {
            "readOnlyHint": self.read_only,
            "destructiveHint": self.destructive,
            "idempotentHint": self.idempotent,
        }
        return {k: v for k, v in hints.items() if v is not None}

    def to_mcp(self) -> Dict[str, Any]:
        """Shape advertised by ``tools/list``."""
        data: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }
        if self.title:
            data["title"] = self.title
        if self.output_schema:
            data["outputSchema"] = self.output_schema
        annotations = self.annotations()
        if annotations:
            data["annotations"] = annotations
        return data


def user_message(text: str) -> Dict[str, Any]:
    """Prompt output message ``{role: user, content: {type: text, text}}``."""
    return {"role": "user", "content": {"type": "text", "text": text}}
