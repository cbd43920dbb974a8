"""Argument vector construction for process-image replacement.

Arguments are passed to ``os.execvp`` as an exact vector: no escaping, no
quoting, no shell re-splitting. Each entry is encoded once, in the parent,
into an independently owned ``bytes`` object that lives inside the forked
child until exec replaces its image.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class ArgVector:
    """Owned, encoded argument vector.

    ``entries`` is never empty. The terminating NULL pointer of the C-level
    ``argv`` is appended by ``os.execvp`` itself, so the vector only has to
    guarantee at least one entry: when the caller supplies no arguments the
    executable name is used as ``argv[0]``.
    """

    entries: tuple[bytes, ...]

    def __len__(self) -> int:
        return len(self.entries)

    def for_exec(self) -> list[bytes]:
        """The list handed to ``os.execvp``; only built at the exec call site."""
        return list(self.entries)

    def decoded(self) -> list[str]:
        return [os.fsdecode(entry) for entry in self.entries]


def build_argv(executable: str, args: Iterable[str]) -> ArgVector:
    """Encode ``args`` for exec.

    >>> build_argv("echo", ["echo", "a b", '"q"']).entries
    (b'echo', b'a b', b'"q"')
    >>> build_argv("true", []).entries
    (b'true',)
    """
    entries = tuple(os.fsencode(arg) for arg in args)
    if not entries:
        entries = (os.fsencode(executable),)
    return ArgVector(entries=entries)


__all__ = ["ArgVector", "build_argv"]
