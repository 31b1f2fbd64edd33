"""Exception hierarchy shared across toolpilot."""

from __future__ import annotations


class ToolpilotError(Exception):
    """Base class for all toolpilot errors."""


class ConfigError(ToolpilotError):
    """Invalid or unloadable configuration."""


class DuplicateNameError(ToolpilotError):
    """A tool with the same name is already registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' is already registered")


class ProviderError(ToolpilotError):
    """The LLM provider failed (network, auth, malformed response).

    Fatal for an agent run: the loop re-raises it to the caller.
    """


class RateLimitExceededError(ToolpilotError):
    """Too many agent runs for one caller within the rolling window.

    Raised before any model call is made. ``retry_after`` is the number of
    seconds until the oldest hit leaves the window.
    """

    def __init__(self, key: str, limit: int, window_s: float, retry_after: float) -> None:
        self.key = key
        self.limit = limit
        self.window_s = window_s
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for '{key}': at most {limit} runs per "
            f"{window_s:g}s. Retry in {retry_after:.1f}s."
        )


class AgentBusyError(ToolpilotError):
    """``run()`` was called while the same Agent is still running.

    One Agent owns one message list; concurrent runs need separate Agents.
    """

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        super().__init__(f"Agent is busy with run {run_id}; wait for it or use another Agent")
