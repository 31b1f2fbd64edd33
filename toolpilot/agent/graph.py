"""LangGraph StateGraph — compile the think/act loop."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, TypedDict

from langgraph.graph import END, START, StateGraph

from toolpilot.agent.tools.types import ToolCall


class RunState(TypedDict, total=False):
    """Graph state for one run. Messages live on the Agent, not here."""

    model: str
    turn: int
    final: str
    tool_calls: list[ToolCall]
    done: bool


Node = Callable[[RunState], Awaitable[dict[str, Any]]]


def after_think(state: RunState) -> str:
    """Conditional edge: tool calls go to act, anything else ends the run."""
    if state.get("done"):
        return END
    return "act"


def after_act(state: RunState) -> str:
    """Conditional edge: back to think unless cancelled or out of turns."""
    if state.get("done"):
        return END
    return "think"


def create_graph(think: Node, act: Node):
    """
    Build and compile the agent loop.

    Graph flow:
        START → think ⇄ act → END
    """
    graph = StateGraph(RunState)

    graph.add_node("think", think)
    graph.add_node("act", act)

    graph.add_edge(START, "think")
    graph.add_conditional_edges("think", after_think)
    graph.add_conditional_edges("act", after_act)
    return graph.compile()


def recursion_limit(max_turns: int) -> int:
    """LangGraph step budget: two nodes per turn, plus slack."""
    return max_turns * 2 + 5
