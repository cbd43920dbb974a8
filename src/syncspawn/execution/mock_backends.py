"""Mock process backends — test doubles for the supervisor and runner.

Provide purpose-built ``ProcessBackend`` implementations that hand out canned
raw wait statuses instead of creating processes, so timeout handling, signal
decoding and delivery failures can be exercised deterministically.

Architecture::

    ProcessBackend (Protocol)
    ├── ForkExecBackend   (backends.py — real fork/exec)
    ├── StubBackend       (fixed status; optional "still running" polls)
    ├── SequenceBackend   (scripted poll results)
    └── FailingBackend    (spawn always raises ForkError)

Example::

    from syncspawn.execution.mock_backends import StubBackend
    from syncspawn.execution.result import exit_status

    backend = StubBackend(status=exit_status(3))
    result = SpawnRunner("tool", ["tool"], backend=backend).run()
    assert result.status == 3

    # never exits on its own; dies when SIGTERM arrives
    backend = StubBackend(running_polls=None)

See Also:
    syncspawn.execution.backends — ForkExecBackend
    syncspawn.execution.result — exit_status / signal_status encoders
"""

from __future__ import annotations

import signal
from collections.abc import Iterable
from dataclasses import dataclass, field

from syncspawn.core.errors import ForkError
from syncspawn.execution._types import ChildHandle, SetupFailure
from syncspawn.execution.child import ChildPlan
from syncspawn.execution.result import exit_status, signal_status

_TERMINATING = frozenset({signal.SIGTERM, signal.SIGKILL})


@dataclass
class _Calls:
    """What a fake backend was asked to do."""

    spawned: list[ChildPlan] = field(default_factory=list)
    polls: int = 0
    waits: int = 0
    signals: list[tuple[int, int]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# StubBackend — fixed status, optional running period
# ---------------------------------------------------------------------------

class StubBackend:
    """Backend with a canned raw status.

    Parameters
    ----------
    status
        Raw wait status returned once the fake child terminates.
    pid
        Process id handed out by ``spawn``.
    running_polls
        Number of ``poll()`` calls that report "still running" before the
        child exits naturally. ``None`` means it never exits on its own.
    honored_signals
        Signals that kill the fake child; the next poll then reports
        ``signal_status(signum)``. Others are ignored, like a child that
        installed a handler.
    signal_error
        Exception raised from ``send_signal`` (e.g. ``ProcessLookupError()``).
    setup_error
        Returned in the ``ChildHandle``, as if the error pipe reported it.
    """

    def __init__(
        self,
        *,
        status: int = exit_status(0),
        pid: int = 4242,
        running_polls: int | None = 0,
        honored_signals: Iterable[int] = _TERMINATING,
        signal_error: Exception | None = None,
        setup_error: SetupFailure | None = None,
    ) -> None:
        self._status = status
        self._pid = pid
        self._running_polls = running_polls
        self._honored = frozenset(honored_signals)
        self._signal_error = signal_error
        self._setup_error = setup_error
        self._killed_by: int | None = None
        self.calls = _Calls()

    @property
    def name(self) -> str:
        return "stub"

    def spawn(self, plan: ChildPlan) -> ChildHandle:
        self.calls.spawned.append(plan)
        return ChildHandle(pid=self._pid, setup_error=self._setup_error)

    def poll(self, pid: int) -> int | None:
        self.calls.polls += 1
        if self._killed_by is not None:
            return signal_status(self._killed_by)
        if self._running_polls is None or self.calls.polls <= self._running_polls:
            return None
        return self._status

    def wait(self, pid: int) -> int:
        self.calls.waits += 1
        if self._killed_by is not None:
            return signal_status(self._killed_by)
        return self._status

    def send_signal(self, pid: int, signum: int) -> None:
        self.calls.signals.append((pid, signum))
        if self._signal_error is not None:
            raise self._signal_error
        if signum in self._honored:
            self._killed_by = signum


# ---------------------------------------------------------------------------
# SequenceBackend — scripted poll results
# ---------------------------------------------------------------------------

class SequenceBackend:
    """Backend whose ``poll()`` walks a script of results.

    Each entry is ``None`` ("still running") or a raw status. Once the script
    is exhausted its last entry repeats. ``wait()`` returns the first
    non-``None`` entry.

    Example::

        backend = SequenceBackend([None, None, exit_status(0)])
    """

    def __init__(self, script: Iterable[int | None], *, pid: int = 4243) -> None:
        self._script = list(script)
        if not self._script:
            raise ValueError("script must contain at least one entry")
        self._pid = pid
        self.calls = _Calls()

    @property
    def name(self) -> str:
        return "sequence"

    def spawn(self, plan: ChildPlan) -> ChildHandle:
        self.calls.spawned.append(plan)
        return ChildHandle(pid=self._pid)

    def poll(self, pid: int) -> int | None:
        index = min(self.calls.polls, len(self._script) - 1)
        self.calls.polls += 1
        return self._script[index]

    def wait(self, pid: int) -> int:
        self.calls.waits += 1
        for entry in self._script:
            if entry is not None:
                return entry
        raise RuntimeError("script never terminates; wait() would block forever")

    def send_signal(self, pid: int, signum: int) -> None:
        self.calls.signals.append((pid, signum))


# ---------------------------------------------------------------------------
# FailingBackend — fork always fails
# ---------------------------------------------------------------------------

class FailingBackend:
    """Backend whose ``spawn`` raises ``ForkError``, as when ``fork()`` hits EAGAIN."""

    def __init__(self, *, message: str = "Simulated fork failure") -> None:
        self._message = message
        self.calls = _Calls()

    @property
    def name(self) -> str:
        return "failing"

    def spawn(self, plan: ChildPlan) -> ChildHandle:
        self.calls.spawned.append(plan)
        raise ForkError(f"{self._message}: {plan.file}").with_context(executable=plan.file)

    def poll(self, pid: int) -> int | None:
        raise AssertionError("poll() called without a child")

    def wait(self, pid: int) -> int:
        raise AssertionError("wait() called without a child")

    def send_signal(self, pid: int, signum: int) -> None:
        raise AssertionError("send_signal() called without a child")


__all__ = ["StubBackend", "SequenceBackend", "FailingBackend"]
