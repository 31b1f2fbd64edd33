"""Tool system — ToolRegistry and factory that loads configured tools."""

from __future__ import annotations

import importlib
from typing import Any

from langchain_core.tools import BaseTool
from loguru import logger

from toolpilot.agent.tools.langchain import LangChainTool
from toolpilot.agent.tools.registry import ToolInfo, ToolRegistry, ValidationOutcome
from toolpilot.agent.tools.types import (
    FunctionTool,
    Tool,
    ToolCall,
    ToolDefinition,
    ToolParameter,
    ToolResult,
)
from toolpilot.core.config.schema import Config
from toolpilot.core.errors import ConfigError


def make_tools(config: Config, registry: ToolRegistry | None = None) -> ToolRegistry:
    """Load every ``agent.tools`` reference into a ToolRegistry.

    Each entry is ``"package.module:attr"``. The attribute may be a Tool, a
    LangChain BaseTool, a list of those, or a zero-argument factory returning
    either. Tools are grouped under their module name.

    Raises
    ------
    ConfigError
        If a reference cannot be imported or yields something that is not a tool.
    """
    registry = registry if registry is not None else ToolRegistry()
    for ref in config.agent.tools:
        module_name, tools = _load_reference(ref)
        registry.register_group(module_name, tools)
        logger.info(f"Loaded {len(tools)} tool(s) from {ref}")
    return registry


def _load_reference(ref: str) -> tuple[str, list[Tool]]:
    module_name, sep, attr = ref.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"Tool reference must look like 'module:attr', got {ref!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import tool module {module_name!r}: {e}") from e
    try:
        target = getattr(module, attr)
    except AttributeError as e:
        raise ConfigError(f"{module_name!r} has no attribute {attr!r}") from e

    if isinstance(target, type) or (
        callable(target) and not isinstance(target, (BaseTool, Tool))
    ):
        target = target()
    items = target if isinstance(target, (list, tuple)) else [target]
    return module_name, [_as_tool(item, ref) for item in items]


def _as_tool(item: Any, ref: str) -> Tool:
    if isinstance(item, BaseTool):
        return LangChainTool(item)
    if isinstance(item, Tool):
        return item
    raise ConfigError(f"{ref!r} yielded {type(item).__name__}, which is not a tool")


__all__ = [
    "FunctionTool",
    "LangChainTool",
    "Tool",
    "ToolCall",
    "ToolDefinition",
    "ToolInfo",
    "ToolParameter",
    "ToolRegistry",
    "ToolResult",
    "ValidationOutcome",
    "make_tools",
]
