"""Named failure-suppression policies.

Two failure classes are ignored on purpose: a rejected environment override
must not abort the spawn, and a failed termination signal must not abort
supervision. Both suppressions go through a ``FailurePolicy`` so the
decision is visible at the call site.

Example:
    >>> import os
    >>> with BEST_EFFORT_ENV.guard():
    ...     os.environ["BAD=NAME"] = "x"   # ValueError is suppressed
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass


@dataclass(frozen=True)
class FailurePolicy:
    """A failure class that is deliberately ignored.

    Attributes:
        name: Identifier used in logs
        ignores: Exception types suppressed by ``guard()``
        description: What is ignored and what happens instead
    """

    name: str
    ignores: tuple[type[Exception], ...]
    description: str

    @contextmanager
    def guard(
        self,
        on_failure: Callable[[Exception], None] | None = None,
    ) -> Iterator[None]:
        """Run the block, suppressing ``ignores``.

        ``on_failure`` receives the suppressed exception (used for logging on
        the parent side; the forked child passes nothing).
        """
        try:
            yield
        except self.ignores as exc:
            if on_failure is not None:
                on_failure(exc)


BEST_EFFORT_ENV = FailurePolicy(
    name="best_effort_env",
    ignores=(OSError, ValueError),
    description="environment overrides are applied best-effort in the child; "
    "a variable the OS rejects is skipped and the spawn continues",
)

BEST_EFFORT_SIGNAL = FailurePolicy(
    name="best_effort_signal",
    ignores=(OSError,),
    description="a termination signal that cannot be delivered is logged; "
    "supervision keeps polling until the child is reaped",
)


__all__ = ["FailurePolicy", "BEST_EFFORT_ENV", "BEST_EFFORT_SIGNAL"]
