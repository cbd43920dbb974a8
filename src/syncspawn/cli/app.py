"""
Root Typer application for the syncspawn CLI.

    syncspawn run [--timeout MS] [--cwd DIR] [--env KEY=VALUE]... EXECUTABLE [ARGS]...
    syncspawn config show|validate
    syncspawn --version

``run`` lets the child inherit the terminal, renders the result to stderr
and exits with the child's status (128 + signal number for signal deaths).
"""

from __future__ import annotations

from pathlib import Path

import typer
from typer import Typer

from syncspawn.cli.config import app as config_app
from syncspawn.cli.utils import parse_env_pairs, render_error, render_result
from syncspawn.core.errors import SpawnError
from syncspawn.core.logging import configure_logging
from syncspawn.core.settings import get_settings

app = Typer(
    name="syncspawn",
    help="syncspawn — run a program synchronously and report how it ended.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Exit code for errors raised before the child existed.
INVOCATION_EXIT = 2


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from syncspawn import __version__

        typer.echo(f"syncspawn {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """syncspawn CLI — spawn, supervise and report on a child process."""


# ── Commands ─────────────────────────────────────────────────────────────


@app.command(
    "run",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
def run_command(
    executable: str = typer.Argument(..., help="Program to run (searched on PATH)."),
    args: list[str] | None = typer.Argument(None, help="Arguments passed verbatim."),  # noqa: UP007
    timeout: int | None = typer.Option(  # noqa: UP007
        None, "--timeout", "-t", min=0, help="Timeout in ms (0 = none; default from settings)."
    ),
    kill_after: int | None = typer.Option(  # noqa: UP007
        None, "--kill-after", min=0, help="Send SIGKILL this many ms after the timeout signal."
    ),
    cwd: Path | None = typer.Option(None, "--cwd", "-C", help="Working directory for the child."),  # noqa: UP007
    env: list[str] | None = typer.Option(  # noqa: UP007
        None, "--env", "-e", help="Environment override KEY=VALUE (repeatable)."
    ),
    report_setup_errors: bool = typer.Option(
        False, "--report-setup-errors", help="Report why the child failed before exec."
    ),
    as_json: bool = typer.Option(False, "--json", help="Render the result as JSON."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Do not render the result."),
) -> None:
    """Run EXECUTABLE with ARGS and exit with its status."""
    from syncspawn.execution import SpawnOptions, SpawnRunner

    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs)

    options = SpawnOptions(
        env=parse_env_pairs(env),
        cwd=str(cwd) if cwd is not None else None,
        timeout=timeout,
        kill_after=kill_after,
        report_setup_errors=report_setup_errors,
    )
    try:
        result = SpawnRunner(executable, [executable, *(args or [])], options).run()
    except SpawnError as e:
        render_error(e, as_json=as_json)
        raise typer.Exit(code=INVOCATION_EXIT) from e

    if not quiet:
        render_result(result, as_json=as_json)
    raise typer.Exit(code=result.status)


# ── Sub-command registration ─────────────────────────────────────────────

app.add_typer(config_app, name="config", help="Settings inspection.")
