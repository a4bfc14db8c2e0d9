"""
react_orchestrator Tools Package

Available tools:
- calculator: Mathematical expression evaluation (SymPy)
- weather: Mock current weather for a location
- web_search: Web search via SearXNG
- rag_query: Retrieval-augmented query against a document store
- read_file, write_file, append_file, list_directory, file_info: local filesystem
"""

from . import calculator, filesystem, rag, search, weather
from .registry import (
    ToolDefinition,
    ToolParameter,
    ToolRegistry,
    ToolResult,
    ToolValidationError,
)

_MODULES = (calculator, weather, search, rag, filesystem)


def register_default_tools(registry: ToolRegistry) -> ToolRegistry:
    """Register every built-in tool on ``registry`` and return it."""
    for module in _MODULES:
        module.register(registry)
    return registry


def default_registry() -> ToolRegistry:
    """A fresh registry holding the built-in tools."""
    return register_default_tools(ToolRegistry())


__all__ = [
    "ToolDefinition",
    "ToolParameter",
    "ToolRegistry",
    "ToolResult",
    "ToolValidationError",
    "register_default_tools",
    "default_registry",
]
