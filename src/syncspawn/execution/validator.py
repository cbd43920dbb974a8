"""Invocation validation at the binding boundary.

Checks the raw ``(executable, args, options)`` triple before anything is
forked and turns it into an immutable ``SpawnRequest``. All violations are
collected (not fail-fast) so callers see every problem at once.

    .. code-block:: text

        validate(executable, args, options)
          ├── executable: non-empty str / PathLike, no NUL
          ├── args: sequence (not str) of str, no NUL
          └── options: None | mapping | SpawnOptions  (pydantic)

        validate_or_raise(...)
          └── InvocationError(VALIDATION) on any violation, else SpawnRequest
"""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from syncspawn.core.errors import InvocationError
from syncspawn.core.logging import get_logger
from syncspawn.execution._types import SpawnOptions, SpawnRequest

logger = get_logger(__name__)


class InvocationValidator:
    """Validates a spawn invocation. Stateless and shareable."""

    def validate(self, executable: Any, args: Any, options: Any) -> list[str]:
        violations: list[str] = []
        violations.extend(self._check_executable(executable))
        violations.extend(self._check_args(args))
        violations.extend(self._check_options(options))
        return violations

    def validate_or_raise(self, executable: Any, args: Any, options: Any = None) -> SpawnRequest:
        """Validate and build the request.

        Raises:
            InvocationError: With every violation listed in ``violations``.
        """
        violations = self.validate(executable, args, options)
        if violations:
            msg = "; ".join(violations)
            logger.warning("invocation_rejected", violations=violations)
            raise InvocationError(f"Invalid spawn invocation: {msg}", violations=violations)

        return SpawnRequest(
            executable=os.fspath(executable),
            args=tuple(args),
            options=SpawnOptions.coerce(options),
        )

    # ------------------------------------------------------------------
    # Internal checks
    # ------------------------------------------------------------------

    def _check_executable(self, executable: Any) -> list[str]:
        if isinstance(executable, os.PathLike):
            executable = os.fspath(executable)
        if not isinstance(executable, str):
            return [f"executable must be a string, got {type(executable).__name__}"]
        if not executable:
            return ["executable must not be empty"]
        if "\0" in executable:
            return ["executable must not contain NUL characters"]
        return []

    def _check_args(self, args: Any) -> list[str]:
        if isinstance(args, (str, bytes)) or not isinstance(args, Sequence):
            return [f"args must be a sequence of strings, got {type(args).__name__}"]
        violations = []
        for index, arg in enumerate(args):
            if not isinstance(arg, str):
                violations.append(f"args[{index}] must be a string, got {type(arg).__name__}")
            elif "\0" in arg:
                violations.append(f"args[{index}] must not contain NUL characters")
        return violations

    def _check_options(self, options: Any) -> list[str]:
        if options is None or isinstance(options, SpawnOptions):
            return []
        if not isinstance(options, Mapping):
            return [f"options must be a mapping, got {type(options).__name__}"]
        try:
            SpawnOptions.model_validate(options)
        except ValidationError as exc:
            return [
                f"options.{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
                for err in exc.errors()
            ]
        return []


__all__ = ["InvocationValidator"]
