"""
CLI utility helpers — output formatting.

Everything is rendered to **stderr**: the child spawned by ``syncspawn run``
inherits the terminal's stdout, and its output must stay clean.
"""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from syncspawn.core.errors import SpawnError
from syncspawn.execution import SpawnResult

console = Console()
err_console = Console(stderr=True)


def parse_env_pairs(pairs: list[str] | None) -> dict[str, str]:
    """Turn ``["KEY=VALUE", ...]`` into a dict; the first ``=`` splits."""
    env: dict[str, str] = {}
    for pair in pairs or []:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--env")
        env[name] = value
    return env


def render_result(result: SpawnResult, *, as_json: bool = False) -> None:
    """Render a ``SpawnResult`` to stderr."""
    if as_json:
        err_console.print_json(json.dumps(result.to_dict(), default=str))
        return

    colour = "green" if result.ok else "red"
    table = Table(title=None, show_header=False, pad_edge=False)
    table.add_column("field", style="cyan")
    table.add_column("value", overflow="fold")
    table.add_row("status", f"[{colour}]{result.status}[/{colour}]")
    table.add_row("signal", result.signal or "-")
    table.add_row("pid", str(result.pid))
    table.add_row("file", result.file)
    table.add_row("args", " ".join(result.args))
    table.add_row("timed_out", "yes" if result.timed_out else "no")
    if result.setup_error is not None:
        table.add_row("setup_error", f"{result.setup_error.stage}: {result.setup_error.message}")
    err_console.print(table)


def render_error(error: SpawnError, *, as_json: bool = False) -> None:
    """Render a ``SpawnError`` to stderr."""
    if as_json:
        err_console.print_json(json.dumps({"error": error.to_dict()}, default=str))
        return
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
