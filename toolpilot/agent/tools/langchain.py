"""Adapter that exposes a LangChain ``BaseTool`` through the Tool protocol."""

from __future__ import annotations

from typing import Any

from langchain_core.tools import BaseTool
from loguru import logger

from toolpilot.agent.tools.types import ToolDefinition, ToolParameter, ToolResult

_JSON_TYPES = {
    "string": "string",
    "integer": "number",
    "number": "number",
    "boolean": "boolean",
    "object": "object",
    "array": "array",
}


class LangChainTool:
    """Wrap a LangChain tool so it can be registered in a ToolRegistry.

    The definition is derived from the tool's input schema; results are
    stringified into ``ToolResult.output``. Exceptions are left to the
    registry boundary.
    """

    def __init__(self, tool: BaseTool) -> None:
        self._tool = tool
        self.definition = definition_from_langchain(tool)

    async def execute(self, params: dict[str, Any]) -> ToolResult:
        output = await self._tool.ainvoke(params)
        return ToolResult.ok(output=str(output))

    def __repr__(self) -> str:
        return f"LangChainTool({self.definition.name!r})"


def definition_from_langchain(tool: BaseTool) -> ToolDefinition:
    """Build a ToolDefinition from a LangChain tool's JSON schema."""
    schema = tool.get_input_schema().model_json_schema()
    required = set(schema.get("required", []))
    params = []
    for name, prop in (schema.get("properties") or {}).items():
        params.append(
            ToolParameter(
                name=name,
                type=_resolve_type(prop, tool.name, name),
                description=prop.get("description", ""),
                required=name in required,
                enum=_resolve_enum(prop),
            )
        )
    return ToolDefinition(
        name=tool.name,
        description=(tool.description or "").strip(),
        parameters=params,
    )


def _resolve_type(prop: dict[str, Any], tool_name: str, param: str) -> str:
    candidates = [prop] + list(prop.get("anyOf", []))
    for cand in candidates:
        json_type = cand.get("type")
        if json_type in _JSON_TYPES:
            return _JSON_TYPES[json_type]
    logger.debug(f"No JSON type for {tool_name}.{param}, treating as string")
    return "string"


def _resolve_enum(prop: dict[str, Any]) -> list[str] | None:
    values = prop.get("enum")
    if values and all(isinstance(v, str) for v in values):
        return list(values)
    return None
