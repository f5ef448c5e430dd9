"""Tests for the prompt and resource protocol handlers."""

import pytest

from letta_mcp.core.errors import NotFoundError, ValidationError
from letta_mcp.registry import handlers
from letta_mcp.registry.schema import (
    PromptArgument,
    PromptEntry,
    ResourceEntry,
    ResourceTemplateEntry,
    user_message,
)
from letta_mcp.registry.store import Registry


@pytest.fixture
def registry():
    return Registry()


class TestPromptHandlers:
    """Tests for prompts/list and prompts/get."""

    def test_empty_registry(self, registry):
        """Test listing an empty registry returns no prompts and no cursor."""
        assert handlers.list_prompts(registry) == {"prompts": []}

    def test_list_strips_handler(self, registry):
        """Test only public fields are advertised."""
        registry.register_prompt(PromptEntry(
            name="p1",
            title="P1",
            description="first",
            arguments=[PromptArgument(name="x", required=True)],
            handler=lambda args: [],
        ))

        prompt = handlers.list_prompts(registry)["prompts"][0]

        assert prompt == {
            "name": "p1",
            "title": "P1",
            "description": "first",
            "arguments": [{"name": "x", "description": "", "required": True}],
        }

    def test_list_paginates_by_twenty(self, registry):
        """Test prompts are paged by 20 in registration order."""
        for i in range(25):
            registry.register_prompt(PromptEntry(name=f"p{i:02d}", handler=lambda args: []))

        first = handlers.list_prompts(registry)
        second = handlers.list_prompts(registry, first["nextCursor"])

        assert len(first["prompts"]) == 20
        assert first["nextCursor"] == "20"
        assert [p["name"] for p in second["prompts"]] == [f"p{i:02d}" for i in range(20, 25)]
        assert "nextCursor" not in second

    @pytest.mark.asyncio
    async def test_get_prompt_defaults_arguments(self, registry):
        """Test the handler receives {} when no arguments are given and its output is returned as-is."""
        seen = []
        messages = [user_message("hello")]

        def handler(args):
            seen.append(args)
            return messages

        registry.register_prompt(PromptEntry(name="p1", description="desc", handler=handler))

        result = await handlers.get_prompt(registry, "p1")

        assert seen == [{}]
        assert result == {"description": "desc", "messages": messages}

    @pytest.mark.asyncio
    async def test_get_prompt_async_handler(self, registry):
        """Test coroutine handlers are awaited."""
        async def handler(args):
            return [user_message(args["topic"])]

        registry.register_prompt(PromptEntry(name="p1", handler=handler))

        result = await handlers.get_prompt(registry, "p1", {"topic": "memory"})

        assert result["messages"][0]["content"]["text"] == "memory"

    @pytest.mark.asyncio
    async def test_unknown_prompt(self, registry):
        """Test an unknown name fails without invoking any handler."""
        calls = []
        registry.register_prompt(PromptEntry(name="p1", handler=lambda args: calls.append(args) or []))

        with pytest.raises(NotFoundError, match="Unknown prompt: nope"):
            await handlers.get_prompt(registry, "nope")
        assert calls == []

    @pytest.mark.asyncio
    async def test_missing_name(self, registry):
        """Test a missing name is a validation error."""
        with pytest.raises(ValidationError, match="name"):
            await handlers.get_prompt(registry, None)

    @pytest.mark.asyncio
    async def test_handler_errors_propagate(self, registry):
        """Test handler failures are not swallowed."""
        def handler(args):
            raise RuntimeError("boom")

        registry.register_prompt(PromptEntry(name="p1", handler=handler))

        with pytest.raises(RuntimeError, match="boom"):
            await handlers.get_prompt(registry, "p1")


class TestResourceHandlers:
    """Tests for resources/list, resources/read and subscriptions."""

    def test_list_public_fields(self, registry):
        """Test size and annotations appear only when set."""
        registry.register_resource(ResourceEntry(uri="letta://a", name="a", handler=lambda: {}))
        registry.register_resource(ResourceEntry(
            uri="letta://b", name="b", size=10, annotations={"priority": 1}, handler=lambda: {},
        ))

        a, b = handlers.list_resources(registry)["resources"]

        assert "size" not in a and "annotations" not in a
        assert b["size"] == 10
        assert b["annotations"] == {"priority": 1}
        assert "handler" not in b

    def test_list_paginates_by_fifty(self, registry):
        """Test resources are paged by 50."""
        for i in range(60):
            registry.register_resource(ResourceEntry(uri=f"letta://r/{i}", handler=lambda: {}))

        first = handlers.list_resources(registry)
        second = handlers.list_resources(registry, "50")

        assert len(first["resources"]) == 50
        assert first["nextCursor"] == "50"
        assert len(second["resources"]) == 10
        assert "nextCursor" not in second

    @pytest.mark.asyncio
    async def test_read_resource_envelope(self, registry):
        """Test handler content is merged into contents[0]."""
        async def handler():
            return {"text": '{"ok": true}'}

        registry.register_resource(ResourceEntry(
            uri="letta://status", name="status", title="Status", annotations={"audience": ["user"]}, handler=handler,
        ))

        result = await handlers.read_resource(registry, "letta://status")

        assert result == {
            "contents": [{
                "uri": "letta://status",
                "name": "status",
                "title": "Status",
                "mimeType": "application/json",
                "text": '{"ok": true}',
                "annotations": {"audience": ["user"]},
            }]
        }

    @pytest.mark.asyncio
    async def test_read_unknown_resource(self, registry):
        """Test reading an unregistered URI is NotFound."""
        with pytest.raises(NotFoundError, match="Resource not found: letta://none"):
            await handlers.read_resource(registry, "letta://none")

    def test_templates_are_unpaginated(self, registry):
        """Test every template is listed with its public fields."""
        for i in range(30):
            registry.register_template(ResourceTemplateEntry(uriTemplate=f"letta://{i}/{{id}}", name=f"t{i}"))

        result = handlers.list_resource_templates(registry)

        assert len(result["resourceTemplates"]) == 30
        assert result["resourceTemplates"][0]["uriTemplate"] == "letta://0/{id}"

    def test_subscribe_requires_registered_uri(self, registry):
        """Test subscribing to an unknown URI fails and records nothing."""
        with pytest.raises(NotFoundError):
            handlers.subscribe(registry, "letta://missing")
        assert len(registry.subscriptions) == 0

    def test_subscribe_and_unsubscribe(self, registry):
        """Test the subscription lifecycle."""
        registry.register_resource(ResourceEntry(uri="letta://a", handler=lambda: {}))

        assert handlers.subscribe(registry, "letta://a") == {}
        assert registry.subscriptions.get("letta://a") == {handlers.DEFAULT_SUBSCRIBER}

        assert handlers.unsubscribe(registry, "letta://a") == {}
        assert "letta://a" not in registry.subscriptions

    def test_unsubscribe_unknown_is_noop(self, registry):
        """Test unsubscribing from something never subscribed succeeds."""
        assert handlers.unsubscribe(registry, "letta://never") == {}
