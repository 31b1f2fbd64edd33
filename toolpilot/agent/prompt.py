"""System prompt assembly — base identity + tool catalog + call grammar."""

from __future__ import annotations

from toolpilot.agent.tools.schema import tool_to_markdown
from toolpilot.agent.tools.types import ToolDefinition

DEFAULT_SYSTEM_PROMPT = (
    "You are toolpilot, an AI agent that can help users accomplish tasks.\n"
    "You have access to various tools to interact with files, browsers, and other systems.\n"
    "Always explain your reasoning and ask for clarification when needed."
)

TOOL_CALL_INSTRUCTIONS = """\
## Using tools

To call a tool, write a span in exactly this form (JSON object parameters):

[TOOL_CALL]tool_name: {"param": "value"}[/TOOL_CALL]

You may call several tools in one reply; they run in the order written and
each result comes back to you as a tool message. Some tools need the user's
confirmation and may be denied; adapt your plan if that happens.
When the task is complete, reply with your final answer and no tool calls."""


def build_system_prompt(
    base: str | None,
    definitions: list[ToolDefinition],
) -> str:
    """Return the base prompt, extended with tool docs when any tools exist."""
    prompt = (base or DEFAULT_SYSTEM_PROMPT).strip()
    if not definitions:
        return prompt
    catalog = "\n".join(tool_to_markdown(d) for d in definitions)
    return f"{prompt}\n\n{TOOL_CALL_INSTRUCTIONS}\n\n## Available tools\n\n{catalog}".rstrip()
