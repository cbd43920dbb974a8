"""Wait-status decoding and result assembly.

Pure decoding: no process interaction and no blocking. A raw status from
``waitpid`` is exactly one of

- a normal exit  → ``status = WEXITSTATUS``, ``signal = None``
- a signal death → ``status = 128 + WTERMSIG``, ``signal = "SIGTERM"`` etc.

``exit_status`` / ``signal_status`` build raw statuses in the traditional
POSIX encoding so test doubles can hand them to the decoder.
"""

from __future__ import annotations

import os
import signal
from collections.abc import Sequence

from syncspawn.core.errors import InternalError
from syncspawn.execution._types import SetupFailure, SpawnResult

SIGNAL_EXIT_BASE = 128


def signal_name(signum: int) -> str:
    """Symbolic name of a signal number (``SIG<n>`` when the platform has none)."""
    try:
        return signal.Signals(signum).name
    except ValueError:
        return f"SIG{signum}"


def decode_status(raw_status: int) -> tuple[int, str | None]:
    """Return ``(status, signal name or None)`` for a raw wait status."""
    if os.WIFEXITED(raw_status):
        return os.WEXITSTATUS(raw_status), None
    if os.WIFSIGNALED(raw_status):
        signum = os.WTERMSIG(raw_status)
        return SIGNAL_EXIT_BASE + signum, signal_name(signum)
    raise InternalError(f"wait status {raw_status:#x} is neither an exit nor a signal")


def assemble_result(
    raw_status: int,
    *,
    pid: int,
    file: str,
    args: Sequence[str],
    timed_out: bool = False,
    setup_error: SetupFailure | None = None,
) -> SpawnResult:
    status, signame = decode_status(raw_status)
    return SpawnResult(
        status=status,
        signal=signame,
        pid=pid,
        file=file,
        args=tuple(args),
        timed_out=timed_out,
        setup_error=setup_error,
    )


def exit_status(code: int) -> int:
    """Raw wait status for a normal exit with ``code``."""
    return (code & 0xFF) << 8


def signal_status(signum: int) -> int:
    """Raw wait status for a death by ``signum``."""
    return signum & 0x7F


__all__ = [
    "SIGNAL_EXIT_BASE",
    "signal_name",
    "decode_status",
    "assemble_result",
    "exit_status",
    "signal_status",
]
