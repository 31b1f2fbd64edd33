"""Agent — the orchestration loop between the model, the gate and the tools."""

from __future__ import annotations

import uuid
from typing import Any, Callable

from loguru import logger

from toolpilot.agent.confirmation import DENIED_ERROR, ConfirmationGate
from toolpilot.agent.extractor import extract_tool_calls
from toolpilot.agent.graph import RunState, create_graph, recursion_limit
from toolpilot.agent.prompt import build_system_prompt
from toolpilot.agent.state import (
    AgentEvent,
    AgentState,
    ErrorEvent,
    Message,
    MessageEvent,
    StateChangeEvent,
    ThoughtEvent,
    ToolCallEvent,
    ToolResultEvent,
)
from toolpilot.agent.tools.registry import ToolRegistry
from toolpilot.agent.tools.types import ToolCall, ToolResult
from toolpilot.core.config.schema import Config
from toolpilot.core.errors import AgentBusyError
from toolpilot.core.providers.base import ChatOptions, LLMProvider, TokenUsage
from toolpilot.core.ratelimit import SlidingWindowRateLimiter

DEFAULT_MAX_TURNS = 50
DEFAULT_MODEL = "anthropic/claude-sonnet-4-5-20250929"

EventHandler = Callable[[AgentEvent], Any]


def _new_run_id() -> str:
    return uuid.uuid4().hex


class Agent:
    """
    One agent, one run at a time.

    Flow per run:
        1. Rate-limit check for ``caller_id`` (rejects before any model call)
        2. Append the user prompt, then loop think ⇄ act (LangGraph)
        3. think: provider.chat → thought event → extract tool calls
        4. act: gate (dangerous tools) → registry.execute → tool message
        5. Stop on a reply without tool calls, on cancel, or at ``max_turns``

    Parameters
    ----------
    provider : LLMProvider
        Model client; any exception it raises is fatal for the run.
    registry : ToolRegistry
        Injected tool directory (may be shared between agents).
    system_prompt : str, optional
        Base prompt; the tool catalog and call grammar are appended.
    max_turns : int
        Turn budget per run.
    model : str
        Default model, overridable per ``run()``.
    gate : ConfirmationGate, optional
        Confirmation gate. Defaults to a private gate with the built-in rules.
    rate_limiter : SlidingWindowRateLimiter, optional
        Shared limiter; None disables rate limiting.
    caller_id : str
        Rate-limit key (user or session).
    """

    def __init__(
        self,
        provider: LLMProvider,
        registry: ToolRegistry,
        *,
        system_prompt: str | None = None,
        max_turns: int = DEFAULT_MAX_TURNS,
        model: str = DEFAULT_MODEL,
        temperature: float | None = None,
        max_tokens: int | None = None,
        gate: ConfirmationGate | None = None,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        caller_id: str = "default",
    ) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be >= 1")
        self.provider = provider
        self.registry = registry
        self.system_prompt = system_prompt
        self.max_turns = max_turns
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.gate = gate if gate is not None else ConfirmationGate()
        self.rate_limiter = rate_limiter
        self.caller_id = caller_id

        self._id = _new_run_id()
        self._state = AgentState.IDLE
        self._messages: list[Message] = []
        self._handlers: list[EventHandler] = []
        self._cancelled = False
        self._running = False
        self._turn = 0
        self._usage = TokenUsage()
        self._graph = create_graph(self._think, self._act)

    @classmethod
    def from_config(
        cls,
        config: Config,
        provider: LLMProvider,
        registry: ToolRegistry,
        *,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        caller_id: str = "default",
    ) -> Agent:
        """Build an agent whose loop, gate and prompt follow ``config``."""
        return cls(
            provider,
            registry,
            system_prompt=config.agent.system_prompt,
            max_turns=config.agent.max_turns,
            model=config.agent.model,
            temperature=config.agent.temperature,
            max_tokens=config.agent.max_tokens,
            gate=ConfirmationGate.from_config(config),
            rate_limiter=rate_limiter,
            caller_id=caller_id,
        )

    # ── Introspection ───────────────────────────────────────

    def get_id(self) -> str:
        return self._id

    def get_state(self) -> AgentState:
        return self._state

    def get_messages(self) -> list[Message]:
        return list(self._messages)

    def get_turn(self) -> int:
        return self._turn

    def get_token_usage(self) -> TokenUsage:
        return self._usage.model_copy()

    # ── Events ──────────────────────────────────────────────

    def on_event(self, handler: EventHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def off_event(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def _emit(self, event: AgentEvent) -> None:
        if self._cancelled:
            return
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler error: {e!r}")

    def _set_state(self, state: AgentState) -> None:
        if self._cancelled:
            return
        self._state = state
        self._emit(StateChangeEvent(run_id=self._id, state=state))

    # ── Control ─────────────────────────────────────────────

    def cancel(self) -> None:
        """Stop the run: state becomes done and no further events are emitted.

        In-flight model or tool calls are allowed to finish; their results
        are discarded.
        """
        if self._cancelled:
            return
        if not self._state.terminal:
            self._set_state(AgentState.DONE)
        self._cancelled = True
        denied = self.gate.deny_run(self._id)
        logger.info(
            f"Run {self._id} cancelled at turn {self._turn}"
            + (f", {denied} pending confirmation(s) denied" if denied else "")
        )

    async def run(self, prompt: str, model: str | None = None) -> str:
        """Run the loop for ``prompt`` and return the final answer.

        Raises
        ------
        AgentBusyError
            When this Agent is already running; nothing is reset.
        RateLimitExceededError
            When ``caller_id`` is over its limit, before any model call.
        Exception
            Whatever the provider raised; the run ends in ``error``.
        """
        if self._running:
            raise AgentBusyError(self._id)
        if self.rate_limiter is not None:
            self.rate_limiter.check(self.caller_id)

        self._running = True
        try:
            return await self._run(prompt, model or self.model)
        finally:
            self._running = False

    async def _run(self, prompt: str, model: str) -> str:
        self._id = _new_run_id()
        self._state = AgentState.IDLE
        self._messages = []
        self._cancelled = False
        self._turn = 0
        self._usage = TokenUsage()
        logger.info(f"Run {self._id} started (model={model}, caller={self.caller_id})")

        self._append(Message(role="user", content=prompt))
        self._emit(MessageEvent(run_id=self._id, message=prompt))

        try:
            state = await self._graph.ainvoke(
                {"model": model, "turn": 0, "final": "", "tool_calls": [], "done": False},
                config={"recursion_limit": recursion_limit(self.max_turns)},
            )
        except Exception as e:
            if self._cancelled:
                logger.warning(f"Run {self._id} failed after cancel, ignoring: {e!r}")
                return self._last_answer()
            logger.error(f"Run {self._id} failed: {e!r}")
            self._set_state(AgentState.ERROR)
            self._emit(ErrorEvent(run_id=self._id, error=str(e) or type(e).__name__))
            raise

        if self._cancelled:
            return self._last_answer()
        self._set_state(AgentState.DONE)
        logger.info(
            f"Run {self._id} done in {self._turn} turn(s), "
            f"{self._usage.total_tokens} tokens"
        )
        return state.get("final", "")

    # ── Graph nodes ─────────────────────────────────────────

    async def _think(self, state: RunState) -> dict[str, Any]:
        """Ask the model for its next step and extract tool calls."""
        if self._cancelled:
            return {"done": True}
        self._set_state(AgentState.THINKING)

        response = await self.provider.chat(
            ChatOptions(
                messages=self.get_messages(),
                model=state["model"],
                system_prompt=build_system_prompt(
                    self.system_prompt, self.registry.get_definitions()
                ),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        )
        if self._cancelled:
            return {"done": True}

        turn = state["turn"] + 1
        self._turn = turn
        self._usage = TokenUsage(
            input_tokens=self._usage.input_tokens + response.usage.input_tokens,
            output_tokens=self._usage.output_tokens + response.usage.output_tokens,
        )
        content = response.content
        self._emit(ThoughtEvent(run_id=self._id, thought=content))
        self._append(Message(role="assistant", content=content))

        calls = extract_tool_calls(content, known_tools=self.registry.names())
        if not calls:
            snippet = content[:80]
            logger.debug(f"LLM response (no tools): {snippet!r}")
            return {"turn": turn, "final": content, "tool_calls": [], "done": True}

        logger.debug(f"LLM tool calls: {[c.name for c in calls]}")
        return {"turn": turn, "final": content, "tool_calls": calls, "done": False}

    async def _act(self, state: RunState) -> dict[str, Any]:
        """Run extracted calls sequentially, in extraction order."""
        if self._cancelled:
            return {"done": True}
        self._set_state(AgentState.ACTING)

        for call in state["tool_calls"]:
            result = await self._run_call(call)
            if self._cancelled:
                return {"done": True}
            self._emit(
                ToolResultEvent(
                    run_id=self._id, tool_call_id=call.id, tool_name=call.name, tool_result=result
                )
            )
            self._append(
                Message(
                    role="tool",
                    content=_tool_message_content(result),
                    name=call.name,
                    tool_call_id=call.id,
                )
            )

        if state["turn"] >= self.max_turns:
            logger.warning(f"Run {self._id}: turn budget ({self.max_turns}) exhausted")
            return {"done": True}
        return {"done": False}

    async def _run_call(self, call: ToolCall) -> ToolResult:
        if call.error:
            logger.warning(f"Malformed tool call skipped: {call.error}")
            self._emit(ToolCallEvent(run_id=self._id, tool_call=call))
            return ToolResult.fail(call.error)

        if self.gate.requires_confirmation(call.name):
            self._emit(
                MessageEvent(
                    run_id=self._id,
                    message=f"Waiting for confirmation to execute {call.name}...",
                )
            )
            approved = await self.gate.request(call.name, call.parameters, run_id=self._id)
            if self._cancelled:
                return ToolResult.fail("Run cancelled")
            self._emit(ToolCallEvent(run_id=self._id, tool_call=call))
            if not approved:
                logger.warning(f"Tool {call.name} denied, not executed")
                return ToolResult.fail(DENIED_ERROR)
        else:
            self._emit(ToolCallEvent(run_id=self._id, tool_call=call))

        return await self.registry.execute(call)

    # ── Helpers ─────────────────────────────────────────────

    def _append(self, message: Message) -> None:
        self._messages.append(message)

    def _last_answer(self) -> str:
        for msg in reversed(self._messages):
            if msg.role == "assistant":
                return msg.content
        return ""


def _tool_message_content(result: ToolResult) -> str:
    if result.success:
        return result.output or ""
    return f"Error: {result.error or 'unknown error'}"
