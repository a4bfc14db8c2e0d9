"""
Tests for the tool registry.
"""

from typing import Literal

import pytest

from react_orchestrator.tools.registry import (
    ToolParameter,
    ToolRegistry,
    ToolResult,
    ToolValidationError,
)


def echo(params: dict) -> dict:
    return params


def make_registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        name="echo",
        description="Echo the input back",
        parameters=[
            ToolParameter(name="text", type="string", description="Text to echo", required=True),
            ToolParameter(name="count", type="integer", description="Repeat count"),
            ToolParameter(
                name="mode",
                type="string",
                description="Echo mode",
                schema=Literal["plain", "loud"],
            ),
        ],
        handler=echo,
        formatter=lambda result: f"echo: {result['text']}",
    )
    return registry


class TestToolRegistration:
    """Tests for registering and looking up tools."""

    def test_register_and_get(self):
        registry = make_registry()

        assert "echo" in registry
        assert registry.has("echo")
        assert registry.get("echo").description == "Echo the input back"
        assert registry.names() == ["echo"]
        assert len(registry) == 1

    def test_duplicate_name_rejected(self):
        registry = make_registry()

        with pytest.raises(ValueError, match="already exists"):
            registry.register(name="echo", description="again", handler=echo)

    def test_handler_required(self):
        with pytest.raises(ValueError):
            ToolRegistry().register(name="nothing", description="no handler")

    def test_unregister(self):
        registry = make_registry()

        assert registry.unregister("echo") is True
        assert registry.unregister("echo") is False
        assert registry.get("echo") is None

    def test_copy_is_independent(self):
        registry = make_registry()
        snapshot = registry.copy()

        registry.unregister("echo")

        assert snapshot.has("echo")
        assert not registry.has("echo")

    def test_clear(self):
        registry = make_registry()
        registry.clear()
        assert len(registry) == 0

    def test_tools_summary(self):
        summary = make_registry().get_tools_summary()

        assert summary.startswith("echo: Echo the input back\nParameters:\n")
        assert "  - text: string (required) - Text to echo" in summary
        assert "  - count: integer (optional) - Repeat count" in summary

    def test_summary_for_tool_without_parameters(self):
        registry = ToolRegistry()
        registry.register(name="ping", description="Ping", handler=lambda params: "pong")

        assert registry.get_tools_summary() == "ping: Ping\nParameters:\n  (none)"


class TestToolValidation:
    """Tests for input validation."""

    def test_missing_required(self):
        tool = make_registry().get("echo")

        with pytest.raises(ToolValidationError, match='"text" is missing'):
            tool.validate_input({})

    def test_wrong_type(self):
        tool = make_registry().get("echo")

        with pytest.raises(ToolValidationError, match="must be a integer"):
            tool.validate_input({"text": "hi", "count": "3"})

    def test_bool_is_not_integer(self):
        tool = make_registry().get("echo")

        with pytest.raises(ToolValidationError):
            tool.validate_input({"text": "hi", "count": True})

    def test_schema_validation(self):
        tool = make_registry().get("echo")

        assert tool.validate_input({"text": "hi", "mode": "loud"})["mode"] == "loud"
        with pytest.raises(ToolValidationError, match='"mode" validation failed'):
            tool.validate_input({"text": "hi", "mode": "whisper"})

    def test_undeclared_keys_dropped(self):
        tool = make_registry().get("echo")

        assert tool.validate_input({"text": "hi", "extra": 1}) == {"text": "hi"}

    def test_non_object_input(self):
        tool = make_registry().get("echo")

        with pytest.raises(ToolValidationError):
            tool.validate_input(["hi"])


class TestToolExecution:
    """Tests for ToolRegistry.execute."""

    async def test_sync_handler(self):
        result = await make_registry().execute("echo", {"text": "hi"})

        assert result == ToolResult(success=True, result={"text": "hi"})

    async def test_async_handler(self):
        registry = ToolRegistry()

        async def shout(params):
            return params["text"].upper()

        registry.register(
            name="shout",
            description="Shout",
            parameters=[ToolParameter(name="text", type="string", description="t", required=True)],
            handler=shout,
        )

        result = await registry.execute("shout", {"text": "hi"})

        assert result.result == "HI"

    async def test_unknown_tool(self):
        result = await make_registry().execute("missing", {})

        assert result.success is False
        assert result.error == 'Tool "missing" not found'

    async def test_invalid_input_is_a_failed_result(self):
        result = await make_registry().execute("echo", {"count": 1})

        assert result.success is False
        assert "text" in result.error

    async def test_handler_exception_is_a_failed_result(self):
        registry = ToolRegistry()

        def broken(params):
            raise RuntimeError("disk on fire")

        registry.register(name="broken", description="Fails", handler=broken)

        result = await registry.execute("broken", {})

        assert result.success is False
        assert result.error == "disk on fire"

    def test_format_result(self):
        registry = make_registry()

        assert registry.format_result("echo", ToolResult(success=True, result={"text": "hi"})) == "echo: hi"
        assert registry.format_result("echo", ToolResult(success=False, error="bad")) == "Error: bad"
        assert registry.format_result("missing", ToolResult(success=True, result=3)) == "3"
        assert registry.format_result("missing", ToolResult(success=True, result={"a": [1]})) == '{"a": [1]}'

    def test_result_to_dict(self):
        assert ToolResult(success=True, result=1).to_dict() == {"success": True, "result": 1}
        assert ToolResult(success=False, error="x").to_dict() == {
            "success": False,
            "result": None,
            "error": "x",
        }
