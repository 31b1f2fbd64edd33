"""Parameter schema validator — pydantic models built from ToolParameter lists.

Nothing here is written per tool: each parameter list is turned into a strict
pydantic model at registration time, so adding a tool never touches this
module.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    create_model,
)

from toolpilot.agent.tools.types import ToolDefinition, ToolParameter

_TYPE_MAP: dict[str, Any] = {
    "string": StrictStr,
    "number": Union[StrictInt, StrictFloat],
    "boolean": StrictBool,
    "object": dict[str, Any],
    "array": list[Any],
}

_MODEL_CONFIG = ConfigDict(strict=True, extra="allow")


class ParameterValidator:
    """Structural validator for one tool's parameters.

    Parameters are declared under positional field names with the real
    parameter name as alias, so names like ``json`` or ``model_config``
    cannot collide with BaseModel attributes.
    """

    def __init__(self, parameters: list[ToolParameter], name: str = "Tool") -> None:
        self.parameters = tuple(parameters)
        self._model = _build_model(name, self.parameters)

    def validate(self, params: Any) -> str | None:
        """Return None when valid, else a ``<param>: <message>`` listing."""
        try:
            self._model.model_validate(params)
        except ValidationError as e:
            return _format_errors(e)
        return None


def _field_type(param: ToolParameter) -> Any:
    if param.enum:
        # closed set of strings regardless of declared base type
        return Literal[tuple(param.enum)]
    return _TYPE_MAP[param.type]


def _build_model(name: str, parameters: tuple[ToolParameter, ...]) -> type[BaseModel]:
    fields: dict[str, Any] = {}
    for i, param in enumerate(parameters):
        default = ... if param.required else None
        fields[f"p{i}"] = (
            _field_type(param),
            Field(default, alias=param.name, description=param.description),
        )
    return create_model(f"{name}Parameters", __config__=_MODEL_CONFIG, **fields)


def _format_errors(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "parameters"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return ", ".join(parts)


def build_validator(parameters: list[ToolParameter], name: str = "Tool") -> ParameterValidator:
    """Build a validator from a declarative parameter list."""
    return ParameterValidator(parameters, name=name)


def validate_parameters(parameters: list[ToolParameter], params: Any) -> str | None:
    """One-shot validation; see ParameterValidator.validate."""
    return build_validator(parameters).validate(params)


def tool_to_markdown(definition: ToolDefinition) -> str:
    """Render a tool definition as a markdown section for the system prompt."""
    lines = [f"### {definition.name}", "", definition.description, "", "**Parameters:**"]
    if not definition.parameters:
        lines.append("- (none)")
    for param in definition.parameters:
        required = "(required)" if param.required else "(optional)"
        line = f"- `{param.name}` ({param.type}) {required}: {param.description}"
        if param.enum:
            line += f" One of: {', '.join(param.enum)}."
        lines.append(line)
    return "\n".join(lines) + "\n"
