"""Tool-call extraction from free-form model output.

Wire format (one span per call, inline or across lines)::

    [TOOL_CALL]tool_name: {"param": "value"}[/TOOL_CALL]

Fenced ```json blocks holding an array of ``{"name", "parameters"}`` objects
are also accepted, but only for names the caller says exist.
"""

from __future__ import annotations

import json
import re
from collections.abc import Collection
from typing import Any

from loguru import logger

from toolpilot.agent.tools.types import ToolCall

TOOL_CALL_OPEN = "[TOOL_CALL]"
TOOL_CALL_CLOSE = "[/TOOL_CALL]"

_SPAN_RE = re.compile(r"\[TOOL_CALL\](.*?)\[/TOOL_CALL\]", re.DOTALL)
_BODY_RE = re.compile(r"\s*([A-Za-z_][\w.-]*)\s*:\s*(.*?)\s*$", re.DOTALL)
_CODE_BLOCK_RE = re.compile(r"```json\s*\n(.*?)\n\s*```", re.DOTALL)


def extract_tool_calls(
    content: str,
    known_tools: Collection[str] | None = None,
) -> list[ToolCall]:
    """Return every tool call in ``content``, in the order it appears.

    A span whose body cannot be parsed still yields a ToolCall, with
    ``error`` set, so that one bad span fails alone.

    Parameters
    ----------
    content : str
        Model response text.
    known_tools : collection of str, optional
        Registered tool names. Enables the fenced-JSON format; without it
        only ``[TOOL_CALL]`` spans are considered.
    """
    found: list[tuple[int, ToolCall]] = []

    for match in _SPAN_RE.finditer(content):
        found.append((match.start(), _parse_span(match.group(1))))

    if known_tools:
        for match in _CODE_BLOCK_RE.finditer(content):
            if _inside_span(match.start(), content):
                continue
            for call in _parse_code_block(match.group(1), known_tools):
                found.append((match.start(), call))

    found.sort(key=lambda pair: pair[0])
    calls = [call for _, call in found]
    if calls:
        logger.debug(f"Extracted tool calls: {[c.name for c in calls]}")
    return calls


def _parse_span(body: str) -> ToolCall:
    match = _BODY_RE.match(body)
    if match is None:
        snippet = body.strip()[:40]
        return ToolCall(name="", error=f"Malformed tool call (expected 'name: {{...}}'): {snippet!r}")

    name, raw = match.group(1), match.group(2)
    if not raw:
        return ToolCall(name=name, error="Malformed tool call: missing JSON parameters")
    try:
        params = json.loads(raw)
    except json.JSONDecodeError as e:
        return ToolCall(name=name, error=f"Malformed tool call: invalid JSON ({e.msg})")
    if not isinstance(params, dict):
        return ToolCall(
            name=name,
            error=f"Malformed tool call: parameters must be a JSON object, got {type(params).__name__}",
        )
    return ToolCall(name=name, parameters=params)


def _parse_code_block(raw: str, known_tools: Collection[str]) -> list[ToolCall]:
    try:
        parsed: Any = json.loads(raw)
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, list):
        return []

    calls = []
    for item in parsed:
        if not isinstance(item, dict):
            continue
        name = item.get("name")
        if not isinstance(name, str) or name not in known_tools:
            continue
        params = item.get("parameters") or {}
        if isinstance(params, dict):
            calls.append(ToolCall(name=name, parameters=params))
        else:
            calls.append(ToolCall(name=name, error="Malformed tool call: parameters must be a JSON object"))
    return calls


def _inside_span(pos: int, content: str) -> bool:
    opened = content.rfind(TOOL_CALL_OPEN, 0, pos)
    if opened == -1:
        return False
    closed = content.rfind(TOOL_CALL_CLOSE, 0, pos)
    return closed < opened
