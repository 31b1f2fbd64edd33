"""Tool contract — definitions, calls and results exchanged with the registry."""

from __future__ import annotations

import inspect
import uuid
from typing import Any, Awaitable, Callable, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

ParameterType = Literal["string", "number", "boolean", "object", "array"]


class ToolParameter(BaseModel):
    """One declared parameter of a tool."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: ParameterType
    description: str = ""
    required: bool = False
    enum: list[str] | None = None
    default: Any = None


class ToolDefinition(BaseModel):
    """Name, description and parameter list advertised to the model."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    parameters: list[ToolParameter] = Field(default_factory=list)


def new_call_id() -> str:
    return uuid.uuid4().hex


class ToolCall(BaseModel):
    """A model-requested invocation.

    ``error`` is set by the extractor when the span could not be parsed;
    such a call is reported as failed without reaching the registry.
    """

    name: str
    id: str = Field(default_factory=new_call_id)
    parameters: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


class ToolResult(BaseModel):
    success: bool
    output: str | None = None
    error: str | None = None
    data: Any = None

    @classmethod
    def ok(cls, output: str | None = None, data: Any = None) -> ToolResult:
        return cls(success=True, output=output, data=data)

    @classmethod
    def fail(cls, error: str, data: Any = None) -> ToolResult:
        return cls(success=False, error=error, data=data)


@runtime_checkable
class Tool(Protocol):
    """Anything with a definition and an async ``execute`` can be registered."""

    definition: ToolDefinition

    async def execute(self, params: dict[str, Any]) -> ToolResult: ...


class FunctionTool:
    """Adapt a plain (sync or async) callable to the Tool protocol.

    The callable receives the parameters as keyword arguments. A returned
    ToolResult is passed through; any other value becomes the ``output``
    text (``None`` → empty output).

    Examples
    --------
    >>> echo = FunctionTool(
    ...     ToolDefinition(name="echo", parameters=[
    ...         ToolParameter(name="message", type="string", required=True)]),
    ...     lambda message: f"Echo: {message}",
    ... )
    """

    def __init__(
        self,
        definition: ToolDefinition,
        func: Callable[..., Any | Awaitable[Any]],
    ) -> None:
        self.definition = definition
        self._func = func

    async def execute(self, params: dict[str, Any]) -> ToolResult:
        value = self._func(**params)
        if inspect.isawaitable(value):
            value = await value
        if isinstance(value, ToolResult):
            return value
        return ToolResult.ok(output="" if value is None else str(value))

    def __repr__(self) -> str:
        return f"FunctionTool({self.definition.name!r})"
