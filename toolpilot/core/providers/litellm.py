"""LiteLLM provider — multi-vendor chat completions behind LLMProvider."""

from __future__ import annotations

import os
from typing import Any, AsyncIterator

import litellm
from loguru import logger

from toolpilot.agent.state import Message
from toolpilot.core.config.schema import Config
from toolpilot.core.errors import ProviderError
from toolpilot.core.providers.base import (
    ChatOptions,
    ChatResponse,
    LLMProvider,
    StreamingChunk,
    TokenUsage,
)

# Suppress litellm noise
litellm.suppress_debug_info = True


class LiteLLMProvider(LLMProvider):
    """LiteLLM-backed provider (anthropic/*, openai/*, openrouter/*, ...).

    Failures are logged and re-raised as ProviderError; the agent loop
    treats them as fatal for the run.
    """

    name = "litellm"

    def __init__(self, config: Config) -> None:
        self.config = config
        self._setup_keys(config)

    async def chat(self, options: ChatOptions) -> ChatResponse:
        kwargs = self._build_kwargs(options)
        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            logger.error(f"LLM error: {e}")
            raise ProviderError(f"Error calling LLM: {e}") from e
        return self._to_chat_response(response, options.model)

    async def chat_stream(self, options: ChatOptions) -> AsyncIterator[StreamingChunk]:
        kwargs = self._build_kwargs(options)
        kwargs["stream"] = True
        chunk_id = ""
        try:
            stream = await litellm.acompletion(**kwargs)
            async for chunk in stream:
                chunk_id = getattr(chunk, "id", "") or chunk_id
                if not chunk.choices:
                    continue
                delta = getattr(chunk.choices[0].delta, "content", None) or ""
                if delta:
                    yield StreamingChunk(id=chunk_id, delta=delta)
        except Exception as e:
            logger.error(f"LLM stream error: {e}")
            raise ProviderError(f"Error streaming from LLM: {e}") from e
        yield StreamingChunk(id=chunk_id, done=True)

    async def list_models(self) -> list[str]:
        """Configured model first, then every model LiteLLM knows about."""
        known = sorted(set(getattr(litellm, "model_list", []) or []))
        default = self.config.agent.model
        return [default] + [m for m in known if m != default]

    def _build_kwargs(self, options: ChatOptions) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": options.model,
            "messages": self._to_litellm_messages(options),
            "temperature": (
                options.temperature
                if options.temperature is not None
                else self.config.agent.temperature
            ),
            "max_tokens": options.max_tokens or self.config.agent.max_tokens,
        }
        api_base = self.config.get_api_base(options.model)
        if api_base:
            kwargs["api_base"] = api_base
        return kwargs

    @staticmethod
    def _to_litellm_messages(options: ChatOptions) -> list[dict[str, Any]]:
        """Convert the conversation to LiteLLM dicts.

        Tool calls travel as plain text, so tool results go back as user
        turns rather than OpenAI ``tool`` messages (which would need a
        matching native tool_call id).
        """
        messages: list[dict[str, Any]] = []
        if options.system_prompt:
            messages.append({"role": "system", "content": options.system_prompt})
        for msg in options.messages:
            messages.append(_message_to_dict(msg))
        return messages

    @staticmethod
    def _to_chat_response(response: Any, model: str) -> ChatResponse:
        """Convert litellm response to ChatResponse."""
        try:
            choice = response.choices[0]
            content = choice.message.content or ""
        except (AttributeError, IndexError, TypeError) as e:
            raise ProviderError(f"Malformed LLM response: {e}") from e

        usage = getattr(response, "usage", None)
        return ChatResponse(
            id=getattr(response, "id", "") or "",
            model=getattr(response, "model", None) or model,
            content=content,
            usage=TokenUsage(
                input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            ),
        )

    @staticmethod
    def _setup_keys(config: Config) -> None:
        """Set env vars for LiteLLM from config."""
        for env, val in [
            ("ANTHROPIC_API_KEY", config.providers.anthropic.api_key),
            ("OPENAI_API_KEY", config.providers.openai.api_key),
            ("OPENROUTER_API_KEY", config.providers.openrouter.api_key),
            ("DEEPSEEK_API_KEY", config.providers.deepseek.api_key),
            ("GROQ_API_KEY", config.providers.groq.api_key),
            ("GEMINI_API_KEY", config.providers.gemini.api_key),
        ]:
            if val:
                os.environ.setdefault(env, val)


def _message_to_dict(msg: Message) -> dict[str, Any]:
    if msg.role == "tool":
        return {"role": "user", "content": f"Tool {msg.name or 'tool'} result: {msg.content}"}
    return {"role": msg.role, "content": msg.content}
