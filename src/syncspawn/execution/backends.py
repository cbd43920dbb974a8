"""Fork/exec process backend — the real OS implementation of ``ProcessBackend``.

Architecture:

    .. code-block:: text

        ForkExecBackend.spawn(plan)
          ├── [report_errors] os.pipe()   (close-on-exec)
          ├── os.fork()
          │     ├── child:  run_child(plan, errpipe_w)  → os.execvp | os._exit(1)
          │     └── parent: read errpipe until EOF
          │                 (EOF with no data = exec succeeded;
          │                  interrupted read = SIGKILL + reap, re-raise)
          └── ChildHandle(pid, setup_error)

        poll(pid)         → os.waitpid(pid, WNOHANG)
        wait(pid)         → os.waitpid(pid, 0)
        send_signal(pid)  → os.kill(pid, signum)

The error pipe is opt-in. Without it, a failing setup step is only visible as
exit status 1, indistinguishable from the target program exiting 1.

See Also:
    mock_backends.py — test doubles with canned wait statuses
    child.py — what runs between fork and exec
"""

from __future__ import annotations

import os
import signal
from contextlib import suppress

from syncspawn.core.errors import ForkError
from syncspawn.core.logging import get_logger
from syncspawn.execution._types import ChildHandle
from syncspawn.execution.child import ChildPlan, decode_setup_failure, run_child

logger = get_logger(__name__)

_ERRPIPE_CHUNK = 4096


def _read_until_eof(fd: int) -> bytes:
    chunks = []
    while True:
        chunk = os.read(fd, _ERRPIPE_CHUNK)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


def _kill_and_reap(pid: int) -> None:
    with suppress(ProcessLookupError):
        os.kill(pid, signal.SIGKILL)
    with suppress(ChildProcessError):
        os.waitpid(pid, 0)


class ForkExecBackend:
    """Creates children with ``os.fork`` + ``os.execvp`` and reaps them with ``waitpid``."""

    @property
    def name(self) -> str:
        return "fork"

    def spawn(self, plan: ChildPlan) -> ChildHandle:
        errpipe = os.pipe() if plan.report_errors else None
        try:
            pid = os.fork()
        except OSError as exc:
            if errpipe is not None:
                os.close(errpipe[0])
                os.close(errpipe[1])
            logger.error("fork_failed", executable=plan.file, error=str(exc))
            raise ForkError(f"fork failed for {plan.file}: {exc}", cause=exc).with_context(
                executable=plan.file
            ) from exc

        if pid == 0:
            if errpipe is not None:
                os.close(errpipe[0])
            run_child(plan, errpipe[1] if errpipe is not None else None)

        if errpipe is None:
            return ChildHandle(pid=pid)

        os.close(errpipe[1])
        try:
            data = _read_until_eof(errpipe[0])
        except BaseException:
            # interrupted before the caller ever saw the pid
            logger.warning("spawn_interrupted", pid=pid, executable=plan.file)
            _kill_and_reap(pid)
            raise
        finally:
            os.close(errpipe[0])
        return ChildHandle(pid=pid, setup_error=decode_setup_failure(data))

    def poll(self, pid: int) -> int | None:
        reaped, status = os.waitpid(pid, os.WNOHANG)
        if reaped == 0:
            return None
        return status

    def wait(self, pid: int) -> int:
        _, status = os.waitpid(pid, 0)
        return status

    def send_signal(self, pid: int, signum: int) -> None:
        os.kill(pid, signum)


__all__ = ["ForkExecBackend"]
