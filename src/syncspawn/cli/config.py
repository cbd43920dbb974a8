"""
CLI: ``syncspawn config`` — settings inspection.
"""

from __future__ import annotations

import typer

from syncspawn.cli.utils import _print_dict, console

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, env"),
) -> None:
    """Show the resolved engine settings."""
    from syncspawn.core.settings import get_settings

    settings = get_settings()

    if format == "json":
        console.print_json(settings.model_dump_json())
        return

    if format == "env":
        for key, value in sorted(settings.model_dump().items()):
            console.print(f"SYNCSPAWN_{key.upper()}={'' if value is None else value}")
        return

    _print_dict(settings.model_dump(), title="Settings")


@app.command("validate")
def validate_config() -> None:
    """Re-read settings from the environment and report errors."""
    from pydantic import ValidationError

    from syncspawn.core.settings import get_settings, reset_settings

    reset_settings()
    try:
        settings = get_settings()
    except ValidationError as e:
        console.print(f"[red]Configuration Error:[/red] {e}")
        raise typer.Exit(1) from e

    console.print(
        f"[green]✓ Settings valid[/green] "
        f"(poll {settings.poll_interval_ms}ms, terminate {settings.terminate_signal})"
    )
