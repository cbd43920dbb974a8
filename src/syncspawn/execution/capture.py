"""Capture facade: run a program and collect its output through temp files.

Sits on top of ``SpawnRunner`` the same way a host binding would:

- the executable is prepended to ``args`` as ``argv[0]``
- ``input`` is written to a temporary file that becomes the child's stdin
- stdout/stderr go to temporary files (pipe-mode stdio), read back once
  the child has been reaped; there is no incremental streaming

With ``capture=False`` the child simply inherits the caller's terminal.

Example:
    >>> done = spawn("echo", ["hello"], encoding="utf-8")
    >>> done.stdout, done.status
    ('hello\\n', 0)
    >>> check_spawn("false")
    Traceback (most recent call last):
    ...
    syncspawn.core.errors.SpawnFailedError: Command failed with status 1: false
"""

from __future__ import annotations

import tempfile
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import IO, Any

from syncspawn.core.errors import SpawnFailedError
from syncspawn.core.settings import SpawnSettings
from syncspawn.execution._types import ProcessBackend, SpawnOptions, SpawnResult, StdioConfig
from syncspawn.execution.runner import SpawnRunner


@dataclass(frozen=True)
class CompletedSpawn:
    """A reaped child plus whatever it wrote (``None`` when not captured)."""

    result: SpawnResult
    stdout: bytes | str | None = None
    stderr: bytes | str | None = None

    @property
    def status(self) -> int:
        return self.result.status

    @property
    def signal(self) -> str | None:
        return self.result.signal

    @property
    def pid(self) -> int:
        return self.result.pid

    @property
    def timed_out(self) -> bool:
        return self.result.timed_out

    def check(self) -> CompletedSpawn:
        """Return self, or raise ``SpawnFailedError`` if the child did not succeed."""
        if self.result.ok:
            return self
        command = " ".join(self.result.args)
        if self.result.setup_error is not None:
            message = f"Command failed during {self.result.setup_error.stage}: {command}"
        elif self.result.signal is not None:
            message = f"Command killed by {self.result.signal}: {command}"
        else:
            message = f"Command failed with status {self.result.status}: {command}"
        raise SpawnFailedError(
            message,
            status=self.result.status,
            signal=self.result.signal,
            stderr=self.stderr,
        ).with_context(executable=self.result.file, pid=self.result.pid)


def _read_back(handle: IO[bytes], encoding: str | None) -> bytes | str:
    handle.seek(0)
    data = handle.read()
    if encoding is not None:
        return data.decode(encoding, errors="replace")
    return data


def spawn(
    executable: str,
    args: Sequence[str] = (),
    *,
    input: bytes | str | None = None,
    encoding: str | None = None,
    capture: bool = True,
    env: Mapping[str, Any] | None = None,
    cwd: str | None = None,
    timeout: int | None = None,
    kill_after: int | None = None,
    report_setup_errors: bool = False,
    backend: ProcessBackend | None = None,
    settings: SpawnSettings | None = None,
) -> CompletedSpawn:
    """Run ``executable args...`` and wait for it.

    Args:
        executable: Program name or path
        args: Arguments after ``argv[0]``
        input: Data fed to the child's stdin (str is encoded with
            ``encoding`` or UTF-8)
        encoding: Decode captured output with this codec; bytes otherwise
        capture: Capture stdout/stderr; when False the child inherits them
        env, cwd, timeout, kill_after, report_setup_errors: See ``SpawnOptions``;
            a ``timeout`` of None falls back to ``default_timeout_ms``
    """
    argv = [executable, *args]
    options: dict[str, Any] = {
        "env": dict(env or {}),
        "cwd": cwd,
        "timeout": timeout,
        "kill_after": kill_after,
        "report_setup_errors": report_setup_errors,
    }

    if not capture:
        runner = SpawnRunner(
            executable, argv, SpawnOptions.coerce(options), backend=backend, settings=settings
        )
        return CompletedSpawn(result=runner.run())

    with (
        tempfile.TemporaryFile() as stdin_file,
        tempfile.TemporaryFile() as stdout_file,
        tempfile.TemporaryFile() as stderr_file,
    ):
        if input is not None:
            if isinstance(input, str):
                input = input.encode(encoding or "utf-8")
            stdin_file.write(input)
            stdin_file.flush()
            stdin_file.seek(0)

        options["stdio"] = StdioConfig.pipe(
            stdin_file.fileno(), stdout_file.fileno(), stderr_file.fileno()
        )
        runner = SpawnRunner(
            executable, argv, SpawnOptions.coerce(options), backend=backend, settings=settings
        )
        result = runner.run()
        return CompletedSpawn(
            result=result,
            stdout=_read_back(stdout_file, encoding),
            stderr=_read_back(stderr_file, encoding),
        )


def check_spawn(executable: str, args: Sequence[str] = (), **kwargs: Any) -> CompletedSpawn:
    """``spawn(...)`` that raises ``SpawnFailedError`` on a non-zero status."""
    return spawn(executable, args, **kwargs).check()


__all__ = ["CompletedSpawn", "spawn", "check_spawn"]
