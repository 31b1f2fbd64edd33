"""LLM providers."""

from toolpilot.core.providers.base import (
    ChatOptions,
    ChatResponse,
    LLMProvider,
    StreamingChunk,
    TokenUsage,
)

__all__ = ["ChatOptions", "ChatResponse", "LLMProvider", "StreamingChunk", "TokenUsage"]
