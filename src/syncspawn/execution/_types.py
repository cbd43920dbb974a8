"""Types and protocols for the spawn engine.

This module defines the canonical records that flow through a spawn:

- SpawnOptions / StdioConfig: resolved configuration with defaulting
- SpawnRequest: immutable (executable, args, options) input
- RunnerState: mutable state owned by one ``SpawnRunner``
- SpawnResult: immutable output record
- SetupFailure: child-side setup failure reported over the error pipe
- ProcessBackend: protocol for the fork/wait/kill primitives

Architecture:

    .. code-block:: text

        ┌──────────────────┐      ┌──────────────────────────┐
        │  SpawnOptions    │      │  ProcessBackend          │
        │  stdio, env, cwd │      │  (Protocol)              │
        │  timeout, ...    │      │  spawn / poll / wait /   │
        └────────┬─────────┘      │  send_signal             │
                 │                └────────────┬─────────────┘
        ┌────────▼─────────┐                   │
        │  SpawnRequest    │──── run() ────────┤
        └──────────────────┘                   │
                                  ┌────────────▼─────────────┐
        ┌──────────────────┐      │  SpawnResult             │
        │  RunnerState     │─────▶│  status, signal, pid,    │
        │  child_pid, ...  │      │  file, args, timed_out   │
        └──────────────────┘      └──────────────────────────┘

Design Notes:
    ``SpawnOptions`` is a pydantic model because callers hand it loose
    mappings (``{"timeout": 200, "stdio": [None, 5, None]}``); the result
    records are plain frozen dataclasses because the engine builds them.
"""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

if TYPE_CHECKING:
    from syncspawn.execution.child import ChildPlan


# ---------------------------------------------------------------------------
# Options model
# ---------------------------------------------------------------------------

STREAM_NAMES = ("stdin", "stdout", "stderr")


class StdioMode(str, Enum):
    """How the three standard streams of the child are bound."""

    DEVICE = "device"   # per-stream fd, or the default terminal device
    PIPE = "pipe"       # three pre-opened descriptors supplied out of band


class StdioConfig(BaseModel):
    """Stdio redirection for the child.

    Device mode: each of ``stdin``/``stdout``/``stderr`` is an open descriptor
    to ``dup2`` onto the standard slot, or ``None`` to open the platform's
    default device (``/dev/stdin``, ``/dev/stdout``, ``/dev/stderr``).

    Pipe mode: ``pipe_fds`` holds exactly three descriptors duplicated onto
    slots 0, 1 and 2.
    """

    model_config = ConfigDict(frozen=True)

    mode: StdioMode = StdioMode.DEVICE
    stdin: int | None = None
    stdout: int | None = None
    stderr: int | None = None
    pipe_fds: tuple[int, int, int] | None = None

    @field_validator("stdin", "stdout", "stderr", mode="before")
    @classmethod
    def _negative_means_default(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool) and value < 0:
            return None
        return value

    @model_validator(mode="after")
    def _pipe_needs_fds(self) -> StdioConfig:
        if self.mode is StdioMode.PIPE:
            if self.pipe_fds is None:
                raise ValueError("pipe mode requires three descriptors in pipe_fds")
            if any(fd < 0 for fd in self.pipe_fds):
                raise ValueError("pipe_fds must be non-negative descriptors")
        return self

    @classmethod
    def device(
        cls,
        stdin: int | None = None,
        stdout: int | None = None,
        stderr: int | None = None,
    ) -> StdioConfig:
        return cls(mode=StdioMode.DEVICE, stdin=stdin, stdout=stdout, stderr=stderr)

    @classmethod
    def pipe(cls, stdin: int, stdout: int, stderr: int) -> StdioConfig:
        return cls(mode=StdioMode.PIPE, pipe_fds=(stdin, stdout, stderr))

    def descriptors(self) -> tuple[int | None, int | None, int | None]:
        """Descriptor (or None for the default device) per standard slot."""
        if self.mode is StdioMode.PIPE:
            assert self.pipe_fds is not None
            return self.pipe_fds
        return (self.stdin, self.stdout, self.stderr)


def _coerce_stdio(value: Any, pipe_fds: Any = None) -> StdioConfig:
    """Turn a loose stdio value into a ``StdioConfig``.

    Missing or invalid input falls back to device mode with all three
    streams on their default devices.
    """
    if isinstance(value, StdioConfig):
        return value
    try:
        if isinstance(value, str) and value.lower() == StdioMode.PIPE.value:
            return StdioConfig(mode=StdioMode.PIPE, pipe_fds=pipe_fds)
        if isinstance(value, Mapping):
            return StdioConfig.model_validate(value)
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)) and len(value) == 3:
            return StdioConfig(**dict(zip(STREAM_NAMES, value)))
    except ValueError:
        pass
    return StdioConfig()


class SpawnOptions(BaseModel):
    """Resolved spawn configuration.

    Responsible only for defaulting: missing ``timeout`` → 0 (wait forever;
    the runner applies ``default_timeout_ms`` only when it was never given),
    missing ``env`` → ``{}``, missing ``cwd`` → no directory change, missing
    or invalid ``stdio`` → device mode with all defaults.

    Example:
        >>> opts = SpawnOptions.coerce({"timeout": 200, "env": {"MODE": "ci"}})
        >>> opts.timeout, opts.cwd
        (200, None)
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    stdio: StdioConfig = Field(default_factory=StdioConfig)
    env: dict[str, Any] = Field(default_factory=dict)
    cwd: str | None = None
    timeout: int = Field(default=0, ge=0)               # milliseconds
    kill_after: int | None = Field(default=None, ge=0)  # milliseconds after the terminate signal
    report_setup_errors: bool = False

    @model_validator(mode="before")
    @classmethod
    def _resolve_loose_input(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        pipe_fds = data.pop("pipe_fds", None)
        data["stdio"] = _coerce_stdio(data.get("stdio"), pipe_fds)
        for key in ("env", "cwd", "timeout"):
            if data.get(key) is None:
                data.pop(key, None)
        return data

    @field_validator("cwd", mode="before")
    @classmethod
    def _fspath_cwd(cls, value: Any) -> Any:
        if isinstance(value, os.PathLike):
            return os.fspath(value)
        return value

    @field_validator("timeout", mode="before")
    @classmethod
    def _truncate_timeout(cls, value: Any) -> Any:
        if isinstance(value, float):
            return int(value)
        return value

    @classmethod
    def coerce(cls, value: SpawnOptions | Mapping[str, Any] | None) -> SpawnOptions:
        """Accept an options instance, a loose mapping, or None."""
        if value is None:
            return cls()
        if isinstance(value, SpawnOptions):
            return value
        return cls.model_validate(value)


# ---------------------------------------------------------------------------
# Request / state / result records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SpawnRequest:
    """Immutable spawn input, borrowed by the runner for one ``run()``."""

    executable: str
    args: tuple[str, ...] = ()
    options: SpawnOptions = field(default_factory=SpawnOptions)


@dataclass
class RunnerState:
    """Mutable state owned exclusively by one ``SpawnRunner``."""

    child_pid: int = -1
    exit_status: int = 0
    timed_out: bool = False
    signal_sent: int | None = None

    @property
    def started(self) -> bool:
        return self.child_pid > 0


@dataclass(frozen=True)
class SetupFailure:
    """A child-side setup step that failed before exec.

    Only produced when ``SpawnOptions.report_setup_errors`` is set.
    """

    stage: str          # "stdio", "cwd" or "exec"
    errno: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"stage": self.stage, "errno": self.errno, "message": self.message}


@dataclass(frozen=True)
class SpawnResult:
    """Outcome of one spawn, constructed once after the child was reaped.

    ``status`` is the exit code (0-255) for a normal exit, or 128 + signal
    number when the child was killed by a signal, in which case ``signal``
    holds the symbolic name.
    """

    status: int
    pid: int
    file: str
    args: tuple[str, ...]
    signal: str | None = None
    timed_out: bool = False
    setup_error: SetupFailure | None = None

    @property
    def ok(self) -> bool:
        return self.status == 0 and self.signal is None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "status": self.status,
            "signal": self.signal,
            "pid": self.pid,
            "file": self.file,
            "args": list(self.args),
            "timed_out": self.timed_out,
            "setup_error": self.setup_error.to_dict() if self.setup_error else None,
        }


@dataclass(frozen=True)
class ChildHandle:
    """What a backend returns to the parent after a successful fork."""

    pid: int
    setup_error: SetupFailure | None = None


# ---------------------------------------------------------------------------
# Backend protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class ProcessBackend(Protocol):
    """Process primitives used by the runner and the supervisor.

    ``ForkExecBackend`` performs the real fork/exec; the test doubles in
    ``mock_backends`` return canned raw wait statuses instead.
    """

    @property
    def name(self) -> str:
        """Short identifier used in logs."""
        ...

    def spawn(self, plan: ChildPlan) -> ChildHandle:
        """Create the child and return its handle. Never returns in the child."""
        ...

    def poll(self, pid: int) -> int | None:
        """Non-blocking wait. Raw status if the child terminated, else None."""
        ...

    def wait(self, pid: int) -> int:
        """Blocking wait. Returns the raw status of the reaped child."""
        ...

    def send_signal(self, pid: int, signum: int) -> None:
        """Deliver ``signum`` to the child. May raise ``OSError``."""
        ...
