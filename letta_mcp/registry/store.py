"""In-memory registries: keyed stores for prompts, resources, templates and tools."""

from __future__ import annotations

from typing import Any, Dict, Generic, Iterator, List, Mapping, Optional, Set, Type, TypeVar, Union

import pydantic

from letta_mcp.core.errors import ValidationError
from letta_mcp.registry.schema import (
    PromptEntry,
    ResourceEntry,
    ResourceTemplateEntry,
    ToolDefinition,
)

EntryT = TypeVar("EntryT", bound=pydantic.BaseModel)


class EntryStore(Generic[EntryT]):
    """
    Ordered map of entries keyed by one identity field.

    Registration order is iteration order. Registering an existing key
    replaces the entry in place, so ``list()`` length does not change.
    """

    def __init__(
        self,
        model: Type[EntryT],
        key_field: str,
        required: List[str],
        error_message: str,
    ):
        self._model = model
        self._key_field = key_field
        self._required = required
        self._error_message = error_message
        self._entries: Dict[str, EntryT] = {}

    def register(self, entry: Union[EntryT, Mapping[str, Any]]) -> EntryT:
        if isinstance(entry, Mapping):
            try:
                entry = self._model(**entry)
            except pydantic.ValidationError as exc:
                raise ValidationError(f"{self._error_message}: {exc}")

        for field_name in self._required:
            if not getattr(entry, field_name, None):
                raise ValidationError(self._error_message)

        self._entries[getattr(entry, self._key_field)] = entry
        return entry

    def get(self, key: str) -> Optional[EntryT]:
        return self._entries.get(key)

    def list(self) -> List[EntryT]:
        return list(self._entries.values())

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[EntryT]:
        return iter(self.list())


class SubscriptionStore:
    """Resource URI -> set of subscriber identifiers."""

    def __init__(self):
        self._subscribers: Dict[str, Set[str]] = {}

    def add(self, uri: str, subscriber: str) -> None:
        self._subscribers.setdefault(uri, set()).add(subscriber)

    def remove(self, uri: str, subscriber: str) -> bool:
        """Drop one subscriber. Returns True if it was present. Empty URIs are removed."""
        subscribers = self._subscribers.get(uri)
        if not subscribers or subscriber not in subscribers:
            return False
        subscribers.discard(subscriber)
        if not subscribers:
            del self._subscribers[uri]
        return True

    def get(self, uri: str) -> Set[str]:
        return set(self._subscribers.get(uri, ()))

    def uris(self) -> List[str]:
        return list(self._subscribers)

    def clear(self) -> None:
        self._subscribers.clear()

    def __contains__(self, uri: object) -> bool:
        return uri in self._subscribers

    def __len__(self) -> int:
        return len(self._subscribers)


class Registry:
    """
    Everything a server advertises, constructed explicitly and injected.

    Each server (and each test) owns its own instance, so there is no
    module-level state to reset between runs.
    """

    def __init__(self):
        self.prompts: EntryStore[PromptEntry] = EntryStore(
            PromptEntry, "name", ["name", "handler"], "Prompt must have name and handler"
        )
        self.resources: EntryStore[ResourceEntry] = EntryStore(
            ResourceEntry, "uri", ["uri", "handler"], "Resource must have uri and handler"
        )
        self.templates: EntryStore[ResourceTemplateEntry] = EntryStore(
            ResourceTemplateEntry,
            "name",
            ["uriTemplate", "name"],
            "Resource template must have uriTemplate and name",
        )
        self.tools: EntryStore[ToolDefinition] = EntryStore(
            ToolDefinition, "name", ["name", "handler"], "Tool must have name and handler"
        )
        self.subscriptions = SubscriptionStore()

    # ── Registration shortcuts ────────────────────────────────────────────

    def register_prompt(self, entry: Union[PromptEntry, Mapping[str, Any]]) -> PromptEntry:
        return self.prompts.register(entry)

    def register_resource(self, entry: Union[ResourceEntry, Mapping[str, Any]]) -> ResourceEntry:
        return self.resources.register(entry)

    def register_template(
        self, entry: Union[ResourceTemplateEntry, Mapping[str, Any]]
    ) -> ResourceTemplateEntry:
        return self.templates.register(entry)

    def register_tool(self, entry: Union[ToolDefinition, Mapping[str, Any]]) -> ToolDefinition:
        return self.tools.register(entry)

    def clear(self) -> None:
        """Empty every store."""
        self.prompts.clear()
        self.resources.clear()
        self.templates.clear()
        self.tools.clear()
        self.subscriptions.clear()
