"""
Tool Registry - the tool contract used by the reasoning loop.

Each tool is registered once with its parameter declarations, handler
and optional formatter. ``execute`` validates the input against the
declarations before the handler runs and always returns a
``ToolResult``: tool failures never escape as exceptions.
"""

import asyncio
import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Optional

from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

ParamType = Literal["string", "number", "integer", "boolean", "object", "array"]

_TYPE_CHECKS: dict[str, Callable[[Any], bool]] = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "object": lambda v: isinstance(v, dict),
    "array": lambda v: isinstance(v, list),
}


class ToolValidationError(ValueError):
    """Raised when tool input does not match the declared parameters."""


@dataclass
class ToolParameter:
    """A declared tool parameter.

    ``schema`` is any type pydantic can validate against (for example
    ``Literal["celsius", "fahrenheit"]``). When given it replaces the
    basic ``type`` check and its validated value is passed to the tool.
    """

    name: str
    type: ParamType
    description: str
    required: bool = False
    schema: Any = None

    def validate(self, value: Any) -> Any:
        if self.schema is not None:
            try:
                return TypeAdapter(self.schema).validate_python(value)
            except ValidationError as e:
                raise ToolValidationError(
                    f'Parameter "{self.name}" validation failed: {e.errors()[0]["msg"]}'
                ) from e
        if not _TYPE_CHECKS[self.type](value):
            raise ToolValidationError(f'Parameter "{self.name}" must be a {self.type}')
        return value


@dataclass
class ToolResult:
    """Uniform outcome of a tool execution."""

    success: bool
    result: Any = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data: dict = {"success": self.success, "result": self.result}
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class ToolDefinition:
    """Metadata for a tool - defined once, used everywhere."""

    name: str
    description: str
    parameters: list[ToolParameter] = field(default_factory=list)
    handler: Callable[..., Any] = lambda params: None
    formatter: Optional[Callable[[Any], str]] = None

    def validate_input(self, tool_input: Any) -> dict:
        """Check required parameters and types; drop undeclared keys."""
        if tool_input is None:
            tool_input = {}
        if not isinstance(tool_input, dict):
            raise ToolValidationError("Tool input must be a JSON object")

        for param in self.parameters:
            if param.required and param.name not in tool_input:
                raise ToolValidationError(f'Required parameter "{param.name}" is missing')

        validated = {}
        for param in self.parameters:
            if param.name in tool_input:
                validated[param.name] = param.validate(tool_input[param.name])
        return validated


class ToolRegistry:
    """Registry of named tools.

    Instances are independent; the reasoning loop works against a
    ``copy()`` taken when the run starts.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}

    def register(
        self,
        name: str,
        description: str,
        parameters: Optional[list[ToolParameter]] = None,
        handler: Optional[Callable[..., Any]] = None,
        formatter: Optional[Callable[[Any], str]] = None,
    ) -> ToolDefinition:
        """Register a tool with its metadata.

        Raises:
            ValueError: If a tool with this name already exists.
        """
        if name in self._tools:
            raise ValueError(f'Tool with name "{name}" already exists')
        if handler is None:
            raise ValueError(f'Tool "{name}" needs a handler')
        tool = ToolDefinition(
            name=name,
            description=description,
            parameters=list(parameters or []),
            handler=handler,
            formatter=formatter,
        )
        self._tools[name] = tool
        logger.debug(f"Registered tool '{name}'")
        return tool

    def unregister(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> Optional[ToolDefinition]:
        """Get a tool by name."""
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> list[str]:
        return list(self._tools)

    def all_tools(self) -> dict[str, ToolDefinition]:
        """Get a copy of all registered tools."""
        return self._tools.copy()

    def copy(self) -> "ToolRegistry":
        """Snapshot of the current registrations."""
        snapshot = ToolRegistry()
        snapshot._tools = self._tools.copy()
        return snapshot

    def clear(self) -> None:
        """Clear all registered tools (mainly for testing)."""
        self._tools.clear()

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def get_tools_summary(self) -> str:
        """Get formatted catalogue of all tools for prompts."""
        blocks = []
        for tool in self._tools.values():
            params = "\n".join(
                f"  - {p.name}: {p.type} ({'required' if p.required else 'optional'}) - {p.description}"
                for p in tool.parameters
            )
            blocks.append(f"{tool.name}: {tool.description}\nParameters:\n{params or '  (none)'}")
        return "\n\n".join(blocks)

    async def execute(self, name: str, tool_input: Any) -> ToolResult:
        """
        Validate input and run a tool.

        Synchronous handlers run in a worker thread so a slow tool does
        not stall other sessions on the event loop.

        Returns:
            ToolResult; failures (unknown tool, invalid input, handler
            exception) are reported with ``success=False``.
        """
        tool = self.get(name)
        if tool is None:
            logger.warning(f"Unknown tool: {name}")
            return ToolResult(success=False, error=f'Tool "{name}" not found')

        try:
            params = tool.validate_input(tool_input)
        except ToolValidationError as e:
            logger.info(f"Tool '{name}' input rejected: {e}")
            return ToolResult(success=False, error=str(e))

        try:
            if inspect.iscoroutinefunction(tool.handler):
                result = await tool.handler(params)
            else:
                result = await asyncio.to_thread(tool.handler, params)
        except Exception as e:
            logger.error(f"Tool '{name}' execution failed: {e}")
            return ToolResult(success=False, error=str(e) or type(e).__name__)

        return ToolResult(success=True, result=result)

    def format_result(self, name: str, result: ToolResult) -> str:
        """Render a result for display using the tool's formatter if any."""
        tool = self.get(name)
        if result.success and tool is not None and tool.formatter is not None:
            try:
                return tool.formatter(result.result)
            except Exception as e:
                logger.debug(f"Formatter for '{name}' failed: {e}")
        if not result.success:
            return f"Error: {result.error}"
        if isinstance(result.result, str):
            return result.result
        return json.dumps(result.result, ensure_ascii=False, default=str)
