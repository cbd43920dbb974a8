"""Child-side setup, executed only inside the forked child.

Steps run in a fixed order and the first failing step ends the child with
exit status 1:

    1. stdio redirection      (dup2 onto slots 0/1/2)
    2. environment overrides  (best-effort, never aborts)
    3. working directory      (chdir)
    4. process-image replacement (os.execvp, PATH search for bare names)

Redirection comes first so that diagnostics from later steps land on the
already-redirected stderr. ``chdir`` precedes exec so that a relative
executable path resolves against the new directory.

Nothing in this module may log or raise into the parent's frames: after
``os.fork()`` the child shares the parent's Python state, so every path out
of ``run_child`` ends in ``os._exit``.
"""

from __future__ import annotations

import os
import signal
from collections.abc import Mapping
from contextlib import suppress
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, NoReturn

from syncspawn.execution._types import STREAM_NAMES, SetupFailure, SpawnRequest, StdioConfig
from syncspawn.execution.argv import ArgVector, build_argv
from syncspawn.execution.policies import BEST_EFFORT_ENV

SETUP_FAILURE_EXIT = 1

_DEFAULT_DEVICES = (
    ("/dev/stdin", os.O_RDONLY),
    ("/dev/stdout", os.O_WRONLY),
    ("/dev/stderr", os.O_WRONLY),
)

# CPython ignores these; an exec'd program expects the defaults.
_RESET_SIGNALS = ("SIGPIPE", "SIGXFSZ")


@dataclass(frozen=True)
class ChildPlan:
    """Everything the child needs, prepared in the parent before fork."""

    file: str
    argv: ArgVector
    stdio: StdioConfig = field(default_factory=StdioConfig)
    env: Mapping[str, Any] = field(default_factory=dict)
    cwd: str | None = None
    report_errors: bool = False

    @classmethod
    def from_request(cls, request: SpawnRequest) -> ChildPlan:
        options = request.options
        return cls(
            file=request.executable,
            argv=build_argv(request.executable, request.args),
            stdio=options.stdio,
            env=MappingProxyType(dict(options.env)),
            cwd=options.cwd,
            report_errors=options.report_setup_errors,
        )


class SetupAbort(Exception):
    """A setup step failed; the child must exit with status 1."""

    def __init__(self, stage: str, errno: int, message: str):
        super().__init__(message)
        self.stage = stage
        self.errno = errno
        self.message = message


# ---------------------------------------------------------------------------
# Setup steps
# ---------------------------------------------------------------------------

def reset_signal_dispositions() -> None:
    for name in _RESET_SIGNALS:
        signum = getattr(signal, name, None)
        if signum is not None:
            signal.signal(signum, signal.SIG_DFL)


def redirect_stdio(stdio: StdioConfig) -> None:
    """Bind slots 0, 1 and 2 to the configured descriptors or devices."""
    for slot, fd in enumerate(stdio.descriptors()):
        if fd is None:
            device, flags = _DEFAULT_DEVICES[slot]
            try:
                fd = os.open(device, flags)
            except OSError as exc:
                raise SetupAbort("stdio", exc.errno or 0, f"{device}: {exc.strerror}") from exc
        try:
            os.dup2(fd, slot)
        except OSError as exc:
            raise SetupAbort(
                "stdio", exc.errno or 0, f"{STREAM_NAMES[slot]} pipe: {exc.strerror}"
            ) from exc


def apply_environment(env: Mapping[str, Any]) -> None:
    """Overwrite or create each string-valued variable; skip everything else."""
    for name, value in env.items():
        if not isinstance(value, str):
            continue
        with BEST_EFFORT_ENV.guard():
            os.environ[name] = value


def change_directory(cwd: str | None) -> None:
    if cwd is None:
        return
    try:
        os.chdir(cwd)
    except OSError as exc:
        raise SetupAbort("cwd", exc.errno or 0, f"{cwd}: {exc.strerror}") from exc


def replace_image(file: str, argv: ArgVector) -> NoReturn:
    """``os.execvp``; only returns control by raising ``SetupAbort``."""
    try:
        os.execvp(file, argv.for_exec())
    except OSError as exc:
        raise SetupAbort("exec", exc.errno or 0, f"{file}: {exc.strerror}") from exc
    raise SetupAbort("exec", 0, f"{file}: exec returned")  # pragma: no cover


# ---------------------------------------------------------------------------
# Error-pipe encoding
# ---------------------------------------------------------------------------

def encode_setup_failure(stage: str, errno: int, message: str) -> bytes:
    return f"{stage}:{errno}:{message}".encode("utf-8", "replace")


def decode_setup_failure(data: bytes) -> SetupFailure | None:
    """Parse what the child wrote to the error pipe; empty means exec succeeded."""
    if not data:
        return None
    text = data.decode("utf-8", "replace")
    stage, _, rest = text.partition(":")
    errno_text, _, message = rest.partition(":")
    try:
        errno = int(errno_text)
    except ValueError:
        errno = 0
    return SetupFailure(stage=stage or "unknown", errno=errno, message=message)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _write_quietly(fd: int, data: bytes) -> None:
    with suppress(OSError):
        os.write(fd, data)


def run_child(plan: ChildPlan, errpipe_write: int | None = None) -> NoReturn:
    """Set up the child and exec the target. Never returns."""
    try:
        reset_signal_dispositions()
        redirect_stdio(plan.stdio)
        apply_environment(plan.env)
        change_directory(plan.cwd)
        replace_image(plan.file, plan.argv)
    except SetupAbort as abort:
        _write_quietly(2, f"errno: {abort.errno}\n{abort.message}\n".encode("utf-8", "replace"))
        if errpipe_write is not None:
            _write_quietly(errpipe_write, encode_setup_failure(abort.stage, abort.errno, abort.message))
    except BaseException as exc:  # anything else must still end in _exit
        detail = f"{type(exc).__name__}: {exc}"
        _write_quietly(2, f"{plan.file}: {detail}\n".encode("utf-8", "replace"))
        if errpipe_write is not None:
            _write_quietly(errpipe_write, encode_setup_failure("internal", 0, detail))
    finally:
        os._exit(SETUP_FAILURE_EXIT)


__all__ = [
    "ChildPlan",
    "SetupAbort",
    "SETUP_FAILURE_EXIT",
    "reset_signal_dispositions",
    "redirect_stdio",
    "apply_environment",
    "change_directory",
    "replace_image",
    "encode_setup_failure",
    "decode_setup_failure",
    "run_child",
]
