# display.py
# All terminal output for genagent runs.
#
# This module owns presentation entirely. agent.py never formats strings;
# it calls named functions here. Swap this file to change the entire UI.
#
# Colour language:
#   cyan: run scaffolding / routing events
#   blue: model calls and responses
#   yellow: validation checkpoints and retries
#   green: success / confirmed
#   red: failures and halts
#   magenta: tool calls (Action / Observation)

import json
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from genagent import config

console = Console(quiet=config.QUIET)


def set_quiet(quiet: bool) -> None:
    console.quiet = quiet


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        return escape(value[:max_len] + "…")
    return escape(value)


def _render(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return str(value)


# ---------------------------------------------------------------------------
# Run entry
# ---------------------------------------------------------------------------


def banner(model: str, label: str | None, tool_names: list[str]) -> None:
    tools = ", ".join(tool_names) if tool_names else "none"
    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]genagent run[/bold cyan]"
            f"{f'  [dim]{escape(label)}[/dim]' if label else ''}\n\n"
            f"[dim]Model :[/dim] [white]{model}[/white]\n"
            f"[dim]Tools :[/dim] [white]{tools}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def subagent_start(name: str, model: str) -> None:
    console.print(
        _label("SUB-AGENT", "cyan"),
        f"[cyan] → {name}[/cyan] [dim]({model})[/dim]",
    )


# ---------------------------------------------------------------------------
# Model steps
# ---------------------------------------------------------------------------


def model_step(attempt: int, step: int, message_count: int) -> None:
    console.print(
        _label("MODEL", "blue"),
        f"[blue] attempt {attempt} · step {step}[/blue] [dim]({message_count} message(s))[/dim]",
    )


def run_paused() -> None:
    console.print(_label("PAUSED", "yellow"), "[yellow] Waiting for resume…[/yellow]")


def message_injected(text: str) -> None:
    console.print(_label("INJECTED", "cyan"), f"[white]{_mono(text, 200)}[/white]")


def step_limit_reached(limit: int) -> None:
    console.print(
        _label("MODEL", "yellow"),
        f"[yellow] Tool step limit ({limit}) reached, using last text.[/yellow]",
    )


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


def tool_call(name: str, args: dict) -> None:
    console.print(
        f"  [magenta]Action[/magenta]   [bold white]{escape(name)}[/bold white]"
        f"  [dim]{_mono(json.dumps(args, default=str), 160)}[/dim]"
    )


def tool_result(result: Any) -> None:
    console.print(f"  [magenta]Observe[/magenta]  [white]{_mono(_render(result), 140)}[/white]")


def tool_error(name: str, error: str) -> None:
    console.print(f"  [bold red]✗ {escape(name)}[/bold red]  [red]{_mono(error, 200)}[/red]")


def compaction_failed(task: str, error: str) -> None:
    console.print(
        _label("COMPACT", "yellow"),
        f"[yellow] History compaction failed for {_mono(task, 60)}:[/yellow] [dim]{_mono(error, 160)}[/dim]",
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validation_failed(attempt: int, total: int, error: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[white]{escape(error)}[/white]",
            title=_label(f"VALIDATION FAILED [{attempt}/{total}]", "yellow"),
            border_style="yellow",
            padding=(0, 2),
        )
    )


def retrying(next_attempt: int) -> None:
    console.print(Rule(f"[yellow]RETRY: attempt {next_attempt}[/yellow]", style="yellow"))


# ---------------------------------------------------------------------------
# Final result
# ---------------------------------------------------------------------------


def final_result(result: Any) -> None:
    console.print()
    console.print(
        Panel(
            f"[white]{escape(_render(result))}[/white]",
            title=_label("RESULT", "green"),
            border_style="green",
            padding=(1, 2),
        )
    )
    console.print()


def halt(reason: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]{escape(reason)}[/bold white]",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()
