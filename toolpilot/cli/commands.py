"""toolpilot CLI — Typer-based command-line interface."""

from __future__ import annotations

import asyncio
import sys
import threading
from typing import TYPE_CHECKING

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from toolpilot import __version__

if TYPE_CHECKING:
    from toolpilot.agent.confirmation import ConfirmationGate, ConfirmationRequest

app = typer.Typer(
    name="toolpilot",
    help="toolpilot - LLM task agent with confirmation-gated tools",
    no_args_is_help=True,
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"toolpilot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=_version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Debug logging"),
) -> None:
    """toolpilot - LLM task agent with confirmation-gated tools."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


# ════════════════════════════════════════════════════════════
# run: one agent run in the terminal
# ════════════════════════════════════════════════════════════


@app.command()
def run(
    prompt: str = typer.Argument(help="Instruction for the agent"),
    model: str | None = typer.Option(None, "--model", "-m", help="Model override"),
    max_turns: int | None = typer.Option(None, "--max-turns", help="Turn budget"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Approve dangerous tools automatically"),
    config_path: str | None = typer.Option(None, "--config", "-c", help="Config YAML path"),
) -> None:
    """Run the agent once and print its events and final answer."""
    from toolpilot.agent.runner import Agent
    from toolpilot.agent.tools import make_tools
    from toolpilot.core.config.loader import load_config
    from toolpilot.core.errors import ToolpilotError
    from toolpilot.core.providers.litellm import LiteLLMProvider

    config = load_config(config_path)
    if max_turns is not None:
        config.agent.max_turns = max_turns

    registry = make_tools(config)
    agent = Agent.from_config(config, LiteLLMProvider(config), registry)
    agent.on_event(_print_event)

    def _on_request(request: ConfirmationRequest) -> None:
        if yes:
            agent.gate.approve(request.id)
        else:
            _confirm_in_background(agent.gate, request)

    agent.gate.on_request(_on_request)

    try:
        answer = asyncio.run(agent.run(prompt, model=model))
    except ToolpilotError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(f"\n[bold cyan]toolpilot:[/bold cyan] {answer}\n")


def _confirm_in_background(gate: ConfirmationGate, request: ConfirmationRequest) -> None:
    """Ask on stdin from a daemon thread.

    The prompt may outlive its request (timeout, cancel); a daemon thread
    never keeps ``asyncio.run`` or the process from exiting.
    """
    loop = asyncio.get_running_loop()
    threading.Thread(target=_ask, args=(gate, request, loop), daemon=True).start()


def _ask(
    gate: ConfirmationGate,
    request: ConfirmationRequest,
    loop: asyncio.AbstractEventLoop,
) -> None:
    question = (
        f"[{request.danger_level.value}] {request.description}\n"
        f"  {request.tool_name}({request.parameters}) - allow?"
    )
    approved = typer.confirm(question, default=False)
    try:
        loop.call_soon_threadsafe(_apply_answer, gate, request.id, approved)
    except RuntimeError:
        logger.debug(f"Run finished before confirmation {request.id} was answered")


def _apply_answer(gate: ConfirmationGate, confirmation_id: str, approved: bool) -> None:
    resolved = gate.approve(confirmation_id) if approved else gate.deny(confirmation_id)
    if not resolved:
        console.print("[dim]Confirmation already resolved, answer ignored.[/dim]")


def _print_event(event) -> None:
    if event.type == "state_change":
        console.print(f"[dim]· {event.state.value}[/dim]")
    elif event.type == "tool_call":
        console.print(f"[yellow]→ {event.tool_call.name}[/yellow] {event.tool_call.parameters}")
    elif event.type == "tool_result":
        result = event.tool_result
        if result.success:
            console.print(f"[green]✓ {event.tool_name}[/green] {(result.output or '')[:200]}")
        else:
            console.print(f"[red]✗ {event.tool_name}[/red] {result.error}")
    elif event.type == "message":
        console.print(f"[dim]{event.message}[/dim]")
    elif event.type == "error":
        console.print(f"[red]error:[/red] {event.error}")


# ════════════════════════════════════════════════════════════
# tools: registry catalog
# ════════════════════════════════════════════════════════════


@app.command()
def tools(
    config_path: str | None = typer.Option(None, "--config", "-c", help="Config YAML path"),
) -> None:
    """List the tools loaded from config, with their danger level."""
    from toolpilot.agent.permissions import DangerPolicy
    from toolpilot.agent.tools import make_tools
    from toolpilot.core.config.loader import load_config

    config = load_config(config_path)
    registry = make_tools(config)
    policy = DangerPolicy.from_config(config)

    catalog = registry.get_catalog()
    if not catalog:
        console.print("[dim]No tools configured (agent.tools is empty).[/dim]")
        return

    table = Table(title="Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Group", style="blue")
    table.add_column("Params", style="white")
    table.add_column("Danger", style="yellow")
    table.add_column("Description", style="white")

    for item in catalog:
        level = policy.get_danger_level(item["name"]).value
        if policy.requires_confirmation(item["name"]):
            level += " (confirm)"
        table.add_row(
            item["name"], item["group"], str(item["parameters"]), level, item["description"]
        )

    console.print(table)

    groups = registry.get_groups_summary()
    summary = ", ".join(f"{name} ({len(names)})" for name, names in sorted(groups.items()))
    console.print(f"[dim]Groups: {summary}[/dim]")


# ════════════════════════════════════════════════════════════
# config: effective settings
# ════════════════════════════════════════════════════════════


@app.command("config")
def show_config(
    config_path: str | None = typer.Option(None, "--config", "-c", help="Config YAML path"),
) -> None:
    """Show the effective configuration (API keys hidden)."""
    from toolpilot.core.config.loader import load_config

    config = load_config(config_path)

    table = Table(title="toolpilot config")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Version", __version__)
    table.add_row("Model", config.agent.model)
    table.add_row("Max turns", str(config.agent.max_turns))
    table.add_row("Confirmation timeout", f"{config.security.confirmation_timeout_s:g}s")
    table.add_row(
        "Rate limit",
        f"{config.rate_limit.max_calls}/{config.rate_limit.window_s:g}s"
        if config.rate_limit.enabled else "disabled",
    )
    table.add_row("Tools", ", ".join(config.agent.tools) or "-")
    table.add_row("API key set", "yes" if config.get_api_key() else "no")

    console.print(table)
