"""Run state — conversation messages, agent states and the event union."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from toolpilot.agent.tools.types import ToolCall, ToolResult


class AgentState(str, Enum):
    """Lifecycle of one run: idle → thinking → (acting → thinking)* → done | error."""

    IDLE = "idle"
    THINKING = "thinking"
    ACTING = "acting"
    DONE = "done"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self in (AgentState.DONE, AgentState.ERROR)


class Message(BaseModel):
    """One conversation entry. Frozen: the run only ever appends."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant", "system", "tool"]
    content: str
    name: str | None = None
    tool_call_id: str | None = None


# ── Events ──────────────────────────────────────────────────


class _BaseEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    run_id: str = ""


class StateChangeEvent(_BaseEvent):
    type: Literal["state_change"] = "state_change"
    state: AgentState


class ThoughtEvent(_BaseEvent):
    type: Literal["thought"] = "thought"
    thought: str


class ToolCallEvent(_BaseEvent):
    type: Literal["tool_call"] = "tool_call"
    tool_call: ToolCall


class ToolResultEvent(_BaseEvent):
    type: Literal["tool_result"] = "tool_result"
    tool_call_id: str
    tool_name: str
    tool_result: ToolResult


class MessageEvent(_BaseEvent):
    type: Literal["message"] = "message"
    message: str


class ErrorEvent(_BaseEvent):
    type: Literal["error"] = "error"
    error: str


AgentEvent = Annotated[
    Union[
        StateChangeEvent,
        ThoughtEvent,
        ToolCallEvent,
        ToolResultEvent,
        MessageEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]
