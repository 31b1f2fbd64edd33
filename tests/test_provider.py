"""Tests for the LiteLLM provider."""

import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from toolpilot.agent.state import Message
from toolpilot.core.config import Config
from toolpilot.core.errors import ProviderError
from toolpilot.core.providers import ChatOptions
from toolpilot.core.providers.litellm import LiteLLMProvider


# ── Fixtures ──────────────────────────────────────────────


@pytest.fixture
def cfg():
    return Config(agent={"model": "openai/gpt-4o", "temperature": 0.2, "max_tokens": 512})


@pytest.fixture
def provider(cfg):
    return LiteLLMProvider(cfg)


@pytest.fixture
def options():
    return ChatOptions(
        model="openai/gpt-4o",
        system_prompt="You are TestBot.",
        messages=[
            Message(role="user", content="echo hi"),
            Message(role="assistant", content='[TOOL_CALL]echo: {"message": "hi"}[/TOOL_CALL]'),
            Message(role="tool", content="Echo: hi", name="echo", tool_call_id="c1"),
        ],
    )


def _make_response(content="hello", prompt_tokens=10, completion_tokens=5):
    msg = SimpleNamespace(content=content)
    choice = SimpleNamespace(finish_reason="stop", message=msg)
    usage = SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)
    return SimpleNamespace(id="resp-1", model="gpt-4o", choices=[choice], usage=usage)


def _chunk(text):
    return SimpleNamespace(id="s1", choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


class _Stream:
    def __init__(self, chunks):
        self._chunks = list(chunks)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._chunks:
            raise StopAsyncIteration
        return self._chunks.pop(0)


# ── chat ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_chat_success(provider, options):
    with patch("litellm.acompletion", new_callable=AsyncMock) as mock:
        mock.return_value = _make_response("Final answer.")
        response = await provider.chat(options)

    assert response.content == "Final answer."
    assert response.id == "resp-1"
    assert response.usage.input_tokens == 10
    assert response.usage.output_tokens == 5
    assert response.usage.total_tokens == 15

    kwargs = mock.call_args.kwargs
    assert kwargs["model"] == "openai/gpt-4o"
    assert kwargs["temperature"] == 0.2
    assert kwargs["max_tokens"] == 512


@pytest.mark.asyncio
async def test_chat_options_override_config(provider, options):
    opts = options.model_copy(update={"temperature": 0.0, "max_tokens": 64})
    with patch("litellm.acompletion", new_callable=AsyncMock) as mock:
        mock.return_value = _make_response()
        await provider.chat(opts)
    assert mock.call_args.kwargs["temperature"] == 0.0
    assert mock.call_args.kwargs["max_tokens"] == 64


@pytest.mark.asyncio
async def test_chat_message_conversion(provider, options):
    with patch("litellm.acompletion", new_callable=AsyncMock) as mock:
        mock.return_value = _make_response()
        await provider.chat(options)

    messages = mock.call_args.kwargs["messages"]
    assert messages[0] == {"role": "system", "content": "You are TestBot."}
    assert messages[1] == {"role": "user", "content": "echo hi"}
    assert messages[2]["role"] == "assistant"
    assert messages[3] == {"role": "user", "content": "Tool echo result: Echo: hi"}


@pytest.mark.asyncio
async def test_chat_error_raises_provider_error(provider, options):
    with patch("litellm.acompletion", new_callable=AsyncMock) as mock:
        mock.side_effect = RuntimeError("API down")
        with pytest.raises(ProviderError, match="API down"):
            await provider.chat(options)


@pytest.mark.asyncio
async def test_chat_malformed_response(provider, options):
    with patch("litellm.acompletion", new_callable=AsyncMock) as mock:
        mock.return_value = SimpleNamespace(choices=[])
        with pytest.raises(ProviderError, match="Malformed"):
            await provider.chat(options)


@pytest.mark.asyncio
async def test_chat_none_content(provider, options):
    with patch("litellm.acompletion", new_callable=AsyncMock) as mock:
        mock.return_value = _make_response(content=None)
        response = await provider.chat(options)
    assert response.content == ""


@pytest.mark.asyncio
async def test_openrouter_api_base(options, monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    provider = LiteLLMProvider(Config(providers={"openrouter": {"api_key": "sk-or"}}))
    opts = options.model_copy(update={"model": "openrouter/moonshotai/kimi-k2.5"})
    with patch("litellm.acompletion", new_callable=AsyncMock) as mock:
        mock.return_value = _make_response()
        await provider.chat(opts)
    assert mock.call_args.kwargs["api_base"] == "https://openrouter.ai/api/v1"


# ── chat_stream ───────────────────────────────────────────


@pytest.mark.asyncio
async def test_chat_stream(provider, options):
    with patch("litellm.acompletion", new_callable=AsyncMock) as mock:
        mock.return_value = _Stream([_chunk("Hel"), _chunk(None), _chunk("lo")])
        chunks = [c async for c in provider.chat_stream(options)]

    assert mock.call_args.kwargs["stream"] is True
    assert "".join(c.delta for c in chunks) == "Hello"
    assert chunks[-1].done
    assert not any(c.done for c in chunks[:-1])


@pytest.mark.asyncio
async def test_chat_stream_error(provider, options):
    with patch("litellm.acompletion", new_callable=AsyncMock) as mock:
        mock.side_effect = RuntimeError("boom")
        with pytest.raises(ProviderError):
            [c async for c in provider.chat_stream(options)]


# ── list_models / keys ────────────────────────────────────


@pytest.mark.asyncio
async def test_list_models_configured_first(provider):
    with patch("litellm.model_list", ["zeta", "openai/gpt-4o", "alpha"]):
        models = await provider.list_models()
    assert models == ["openai/gpt-4o", "alpha", "zeta"]


def test_setup_keys_sets_env(monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    LiteLLMProvider(Config(providers={"groq": {"api_key": "gsk-test"}}))
    assert os.environ["GROQ_API_KEY"] == "gsk-test"
