"""
syncspawn CLI — Typer-based command-line interface.

Usage::

    syncspawn run --timeout 500 -- sleep 10
    syncspawn config show
"""

from syncspawn.cli.app import app

__all__ = ["app"]
