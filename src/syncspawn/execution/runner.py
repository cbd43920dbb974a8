"""SpawnRunner — synchronous child-process execution.

Architecture:

    .. code-block:: text

        SpawnRunner(executable, args, options)
          └── InvocationValidator.validate_or_raise()   ← InvocationError, no fork
        run()
          ├── ChildPlan.from_request()     (argv encoded in the parent)
          ├── backend.spawn(plan)          fork ─┬─ child: setup + execvp
          │                                      └─ parent: ChildHandle(pid)
          ├── Supervisor.supervise(pid, timeout, kill_after)
          │     (blocking wait, or polling + terminate signal)
          └── assemble_result(raw_status) → SpawnResult

    .. mermaid::

        sequenceDiagram
            participant C as Caller
            participant R as SpawnRunner
            participant B as ProcessBackend
            participant S as Supervisor
            C->>R: run()
            R->>B: spawn(plan)
            B-->>R: ChildHandle(pid)
            R->>S: supervise(pid, timeout)
            S->>B: wait / poll / send_signal
            S-->>R: WaitOutcome
            R-->>C: SpawnResult

``run()`` blocks the calling thread until the child has been reaped. A
runner owns its ``RunnerState`` and runs exactly once.

Example:
    >>> from syncspawn import SpawnRunner
    >>> result = SpawnRunner("sleep", ["sleep", "5"], {"timeout": 200}).run()
    >>> result.timed_out, result.signal
    (True, 'SIGTERM')

Tags:
    syncspawn, execution, fork, exec, waitpid, timeout

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from syncspawn.core.errors import InvocationError
from syncspawn.core.logging import get_logger
from syncspawn.core.settings import SpawnSettings, get_settings
from syncspawn.execution._types import (
    ProcessBackend,
    RunnerState,
    SpawnOptions,
    SpawnRequest,
    SpawnResult,
)
from syncspawn.execution.backends import ForkExecBackend
from syncspawn.execution.child import ChildPlan
from syncspawn.execution.result import assemble_result
from syncspawn.execution.supervisor import Supervisor
from syncspawn.execution.validator import InvocationValidator

logger = get_logger(__name__)


class SpawnRunner:
    """Runs one child process to completion.

    Args:
        executable: Program to run; bare names are searched on ``PATH``
        args: Exact argument vector, ``argv[0]`` included
        options: ``SpawnOptions`` or a loose mapping (``timeout``, ``env``,
            ``cwd``, ``stdio``, ``pipe_fds``, ``kill_after``,
            ``report_setup_errors``)
        backend: Process primitives; defaults to ``ForkExecBackend``
        settings: Engine settings; defaults to ``get_settings()``

    Raises:
        InvocationError: On malformed arguments, before any process exists.
    """

    def __init__(
        self,
        executable: str,
        args: Sequence[str] = (),
        options: SpawnOptions | Mapping[str, Any] | None = None,
        *,
        backend: ProcessBackend | None = None,
        settings: SpawnSettings | None = None,
    ) -> None:
        self._request = InvocationValidator().validate_or_raise(executable, args, options)
        self._backend = backend or ForkExecBackend()
        self._settings = settings or get_settings()
        self._state = RunnerState()

    @property
    def request(self) -> SpawnRequest:
        return self._request

    @property
    def state(self) -> RunnerState:
        return self._state

    def run(self) -> SpawnResult:
        """Fork, exec and wait. Returns once the child has been reaped."""
        if self._state.started:
            raise InvocationError(
                "SpawnRunner.run() may only be called once"
            ).with_context(executable=self._request.executable, pid=self._state.child_pid)

        request = self._request
        options = request.options
        # an explicit timeout (0 included) beats the configured default
        if "timeout" in options.model_fields_set:
            timeout_ms = options.timeout
        else:
            timeout_ms = self._settings.default_timeout_ms

        plan = ChildPlan.from_request(request)
        supervisor = Supervisor(
            self._backend,
            poll_interval=self._settings.poll_interval,
            terminate_signal=self._settings.terminate_signum,
        )
        handle = self._backend.spawn(plan)
        self._state.child_pid = handle.pid
        logger.debug(
            "spawn_started",
            executable=request.executable,
            pid=handle.pid,
            timeout_ms=timeout_ms,
            backend=self._backend.name,
        )
        outcome = supervisor.supervise(handle.pid, timeout_ms, options.kill_after)
        self._state.timed_out = outcome.timed_out
        self._state.signal_sent = outcome.signal_sent

        result = assemble_result(
            outcome.status,
            pid=handle.pid,
            file=request.executable,
            args=request.args,
            timed_out=outcome.timed_out,
            setup_error=handle.setup_error,
        )
        self._state.exit_status = result.status

        logger.info(
            "child_reaped",
            executable=request.executable,
            pid=result.pid,
            status=result.status,
            signal=result.signal,
            timed_out=result.timed_out,
            elapsed_ms=int(outcome.elapsed * 1000),
        )
        if handle.setup_error is not None:
            logger.warning(
                "child_setup_failed",
                executable=request.executable,
                pid=result.pid,
                **handle.setup_error.to_dict(),
            )
        return result


def run_spawn(
    executable: str,
    args: Sequence[str] = (),
    options: SpawnOptions | Mapping[str, Any] | None = None,
    *,
    backend: ProcessBackend | None = None,
    settings: SpawnSettings | None = None,
) -> SpawnResult:
    """One-shot helper: ``SpawnRunner(...).run()``."""
    return SpawnRunner(executable, args, options, backend=backend, settings=settings).run()


__all__ = ["SpawnRunner", "run_spawn"]
