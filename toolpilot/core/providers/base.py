"""Base LLM provider — strategy pattern interface."""

from __future__ import annotations

import abc
from typing import AsyncIterator

from pydantic import BaseModel, Field

from toolpilot.agent.state import Message


class ChatOptions(BaseModel):
    """One model request: full conversation plus sampling settings."""

    messages: list[Message]
    model: str
    system_prompt: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class ChatResponse(BaseModel):
    id: str = ""
    model: str = ""
    content: str
    usage: TokenUsage = Field(default_factory=TokenUsage)


class StreamingChunk(BaseModel):
    id: str = ""
    delta: str = ""
    done: bool = False


class LLMProvider(abc.ABC):
    """Abstract base for LLM providers.

    The agent loop only needs ``chat``; ``chat_stream`` chunks are assembled
    by whoever consumes them.
    """

    name: str = "base"

    @abc.abstractmethod
    async def chat(self, options: ChatOptions) -> ChatResponse:
        """Send a chat completion request. Raise on any failure."""
        ...

    @abc.abstractmethod
    def chat_stream(self, options: ChatOptions) -> AsyncIterator[StreamingChunk]:
        """Stream the completion as text deltas; last chunk has ``done=True``."""
        ...

    @abc.abstractmethod
    async def list_models(self) -> list[str]:
        """Model identifiers this provider can serve."""
        ...
