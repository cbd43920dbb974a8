"""Parent-side supervision: wait for the child, enforcing the timeout.

Without a timeout the supervisor performs one blocking ``wait``. With a
timeout it polls on a fixed interval:

    .. code-block:: text

        start = monotonic()
        loop:
          poll(pid)  ── terminated ──▶ return status
          sleep(interval)
          elapsed > timeout and not yet signalled?
              ├── send terminate signal (once), timed_out = True
              └── keep polling; the child is not assumed dead
          kill_after set and grace elapsed?
              └── send SIGKILL (once)

Each iteration blocks for the full interval, so the loop never busy-spins.
A signal that cannot be delivered is logged and ignored
(``BEST_EFFORT_SIGNAL``). If the child catches or ignores the terminate
signal and ``kill_after`` is unset, polling continues until it exits on its
own.

An interrupted wait (Ctrl-C, a backend error) never leaves the child behind:
it is sent ``SIGKILL`` and reaped before the exception propagates.
"""

from __future__ import annotations

import signal
import time
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass

from syncspawn.core.logging import get_logger
from syncspawn.execution._types import ProcessBackend
from syncspawn.execution.policies import BEST_EFFORT_SIGNAL

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL = 0.2  # seconds


@dataclass(frozen=True)
class WaitOutcome:
    """Raw status of the reaped child plus what the supervisor did."""

    status: int
    timed_out: bool = False
    signal_sent: int | None = None
    elapsed: float = 0.0


class Supervisor:
    """Blocks until a child is reaped.

    Args:
        backend: Process primitives (real or fake)
        poll_interval: Seconds slept between non-blocking waits
        terminate_signal: Signal sent once the timeout elapses
        clock: Monotonic clock, injectable for tests
        sleep: Sleep function, injectable for tests
    """

    def __init__(
        self,
        backend: ProcessBackend,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        terminate_signal: int = signal.SIGTERM,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._backend = backend
        self._poll_interval = poll_interval
        self._terminate_signal = terminate_signal
        self._clock = clock
        self._sleep = sleep

    def supervise(
        self,
        pid: int,
        timeout_ms: int = 0,
        kill_after_ms: int | None = None,
    ) -> WaitOutcome:
        """Wait for ``pid`` to terminate and return its raw status.

        Always returns with the child reaped. If the wait is interrupted
        (``KeyboardInterrupt``, an error from the backend), the child is
        killed and reaped before the exception propagates.
        """
        start = self._clock()
        try:
            if timeout_ms <= 0:
                status = self._backend.wait(pid)
                return WaitOutcome(status=status, elapsed=self._clock() - start)
            return self._poll_until_reaped(pid, start, timeout_ms / 1000.0, kill_after_ms)
        except ChildProcessError:
            # nothing left to reap; the pid may already belong to someone else
            raise
        except BaseException:
            self._reap_after_interrupt(pid)
            raise

    def _poll_until_reaped(
        self,
        pid: int,
        start: float,
        timeout: float,
        kill_after_ms: int | None,
    ) -> WaitOutcome:
        timed_out = False
        escalated = False
        signal_sent: int | None = None
        signalled_at = 0.0

        while True:
            status = self._backend.poll(pid)
            if status is not None:
                return WaitOutcome(
                    status=status,
                    timed_out=timed_out,
                    signal_sent=signal_sent,
                    elapsed=self._clock() - start,
                )

            self._sleep(self._poll_interval)
            now = self._clock()

            if not timed_out:
                if now - start > timeout:
                    timed_out = True
                    signalled_at = now
                    logger.warning(
                        "spawn_timeout",
                        pid=pid,
                        timeout_ms=int(timeout * 1000),
                        elapsed_ms=int((now - start) * 1000),
                    )
                    self._deliver(pid, self._terminate_signal)
                    signal_sent = self._terminate_signal
            elif (
                kill_after_ms is not None
                and not escalated
                and now - signalled_at >= kill_after_ms / 1000.0
            ):
                escalated = True
                logger.warning("spawn_escalated", pid=pid, kill_after_ms=kill_after_ms)
                self._deliver(pid, signal.SIGKILL)
                signal_sent = signal.SIGKILL

    def _reap_after_interrupt(self, pid: int) -> None:
        logger.warning("spawn_interrupted", pid=pid)
        self._deliver(pid, signal.SIGKILL)
        # already reaped, or not our child
        with suppress(ChildProcessError):
            self._backend.wait(pid)

    def _deliver(self, pid: int, signum: int) -> None:
        def _log_failure(exc: Exception) -> None:
            logger.warning(
                "signal_delivery_failed",
                pid=pid,
                signal=signum,
                error=str(exc),
                policy=BEST_EFFORT_SIGNAL.name,
            )

        with BEST_EFFORT_SIGNAL.guard(on_failure=_log_failure):
            self._backend.send_signal(pid, signum)


__all__ = ["DEFAULT_POLL_INTERVAL", "Supervisor", "WaitOutcome"]
