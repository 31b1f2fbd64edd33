"""ToolRegistry — named capabilities with validated, crash-proof execution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from toolpilot.agent.tools.schema import ParameterValidator, build_validator
from toolpilot.agent.tools.types import Tool, ToolCall, ToolDefinition, ToolResult
from toolpilot.core.errors import DuplicateNameError


@dataclass
class ToolInfo:
    """Metadata for a registered tool."""

    tool: Tool
    validator: ParameterValidator
    group: str = "default"

    @property
    def definition(self) -> ToolDefinition:
        return self.tool.definition


@dataclass
class ValidationOutcome:
    valid: bool
    error: str | None = None


class ToolRegistry:
    """Flat directory of tools keyed by ``definition.name``.

    One instance is injected into each Agent; several agents may share it and
    call ``execute`` concurrently since execution never mutates the registry.
    ``execute`` is the blast-radius boundary: it always returns a ToolResult.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolInfo] = {}

    def register(self, tool: Tool, group: str = "default") -> None:
        """Add a tool. Raises DuplicateNameError if the name is taken."""
        definition = tool.definition
        if definition.name in self._tools:
            raise DuplicateNameError(definition.name)
        validator = build_validator(definition.parameters, name=definition.name)
        self._tools[definition.name] = ToolInfo(tool=tool, validator=validator, group=group)
        logger.debug(f"Registered tool: {definition.name} (group={group})")

    def register_group(self, group: str, tools: list[Tool]) -> None:
        """Register several tools under one group name."""
        for t in tools:
            self.register(t, group=group)

    def unregister(self, name: str) -> None:
        """Remove a tool; unknown names are ignored."""
        if self._tools.pop(name, None) is not None:
            logger.debug(f"Unregistered tool: {name}")

    def get(self, name: str) -> Tool | None:
        info = self._tools.get(name)
        return info.tool if info else None

    def has(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> list[str]:
        return list(self._tools)

    def get_definitions(self) -> list[ToolDefinition]:
        """All registered definitions, in registration order."""
        return [info.definition for info in self._tools.values()]

    def validate_parameters(self, name: str, params: Any) -> ValidationOutcome:
        """Validate ``params`` against the named tool's schema."""
        info = self._tools.get(name)
        if info is None:
            return ValidationOutcome(valid=False, error=f"Tool '{name}' not found")
        error = info.validator.validate(params)
        if error:
            return ValidationOutcome(valid=False, error=f"Invalid parameters: {error}")
        return ValidationOutcome(valid=True)

    async def execute(self, call: ToolCall) -> ToolResult:
        """Look up, validate and run a tool call. Never raises."""
        info = self._tools.get(call.name)
        if info is None:
            logger.warning(f"Tool not found: {call.name}")
            return ToolResult.fail(f"Tool '{call.name}' not found")

        validation = self.validate_parameters(call.name, call.parameters)
        if not validation.valid:
            logger.warning(f"Rejected call: {call.name} → {validation.error}")
            return ToolResult.fail(validation.error or "Invalid parameters")

        try:
            logger.debug(f"Executing tool: {call.name}({call.parameters})")
            result = await info.tool.execute(dict(call.parameters))
        except Exception as e:
            logger.error(f"Tool error: {call.name} → {e!r}")
            return ToolResult.fail(str(e) or type(e).__name__)

        if not isinstance(result, ToolResult):
            logger.error(f"Tool {call.name} returned {type(result).__name__}, not ToolResult")
            return ToolResult.fail(
                f"Tool '{call.name}' returned {type(result).__name__} instead of a ToolResult"
            )
        logger.debug(f"Tool result: {call.name} → success={result.success}")
        return result

    def get_catalog(self) -> list[dict[str, Any]]:
        """Catalog for CLI introspection."""
        result = []
        for name in sorted(self._tools):
            info = self._tools[name]
            result.append({
                "name": name,
                "group": info.group,
                "description": (info.definition.description or "").split("\n")[0],
                "parameters": len(info.definition.parameters),
            })
        return result

    def get_groups_summary(self) -> dict[str, list[str]]:
        """Return group name to tool names mapping."""
        groups: dict[str, list[str]] = {}
        for name, info in self._tools.items():
            groups.setdefault(info.group, []).append(name)
        return groups

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
