"""
Structured error types for syncspawn.

Provides a small hierarchy of typed errors with metadata for categorization,
reporting and root cause analysis through error chaining.

Errors only ever surface on the *parent* side of the fork boundary. Anything
that goes wrong inside the forked child is reported through the numeric exit
status (and, when requested, the setup-error pipe), never as an exception.

Manifesto:
    - **Typed Error Hierarchy:** One subclass per failure class the caller can see
    - **Synchronous surface only:** Invocation errors are raised before any fork
    - **Rich Context:** Errors carry the executable, pid and stage when known
    - **Error Chaining:** Preserve original exceptions while adding context

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                       SpawnError                          │
        │             (category, context, cause)                    │
        ├───────────────────────────────────────────────────────────┤
        │                                                           │
        │  InvocationError    ForkError       SpawnFailedError      │
        │  (VALIDATION)       (RESOURCE)      (CHILD)               │
        │                                                           │
        │  InternalError                                            │
        │  (INTERNAL)                                               │
        └───────────────────────────────────────────────────────────┘

Examples:
    >>> error = InvocationError("args must be a sequence of strings")
    >>> error.category
    <ErrorCategory.VALIDATION: 'VALIDATION'>

    >>> try:
    ...     raise OSError(11, "Resource temporarily unavailable")
    ... except OSError as e:
    ...     error = ForkError("fork failed", cause=e)
    >>> error.to_dict()["cause"]
    '[Errno 11] Resource temporarily unavailable'

Guardrails:
    ❌ DON'T: Raise from the forked child
    ✅ DO: Exit the child with status 1 and let the parent decode it

    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, error-context, syncspawn

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and reporting.

    Attributes:
        VALIDATION: Malformed call arguments, rejected before fork
        RESOURCE: The OS refused to create the child (EAGAIN, ENOMEM)
        CHILD: The child ran and reported failure through its status
        INTERNAL: Bugs, unexpected wait status
        UNKNOWN: Uncategorized errors
    """

    VALIDATION = "VALIDATION"     # Bad executable/args/options
    RESOURCE = "RESOURCE"         # fork() failed
    CHILD = "CHILD"               # Non-zero status from the child
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        executable: The program that was (or would have been) executed
        pid: Child process id, once one exists
        stage: Setup stage name for child-side failures
        status: Decoded exit status, when the child already terminated
        metadata: Additional key-value pairs
    """

    executable: str | None = None
    pid: int | None = None
    stage: str | None = None
    status: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["executable", "pid", "stage", "status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class SpawnError(Exception):
    """
    Base exception for all syncspawn errors.

    Every error carries a ``category`` for routing, an ``ErrorContext`` and
    an optional ``cause``. Subclasses set ``default_category``.

    Examples:
        >>> error = SpawnError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> error = SpawnError("bad cwd").with_context(executable="ls", stage="cwd")
        >>> error.context.stage
        'cwd'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SpawnError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ForkError("fork failed").with_context(executable="make")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class InvocationError(SpawnError):
    """
    Malformed call at the binding boundary.

    Raised synchronously before any process exists: wrong executable type,
    non-string arguments, unparseable options, or reuse of a runner.
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        violations: list[str] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.violations = list(violations or [])

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.violations:
            result["violations"] = self.violations
        return result


class ForkError(SpawnError):
    """``os.fork()`` failed in the parent; no child was created."""

    default_category = ErrorCategory.RESOURCE


class SpawnFailedError(SpawnError):
    """The child terminated with a non-zero status.

    Only raised by callers that ask for it (``CompletedSpawn.check()``). The
    engine itself reports a failing child through ``SpawnResult.status``.
    """

    default_category = ErrorCategory.CHILD

    def __init__(
        self,
        message: str,
        *,
        status: int,
        signal: str | None = None,
        stderr: str | bytes | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.status = status
        self.signal = signal
        self.stderr = stderr
        self.context.status = status

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["status"] = self.status
        if self.signal is not None:
            result["signal"] = self.signal
        return result


class InternalError(SpawnError):
    """Unexpected state, e.g. a wait status that is neither exit nor signal."""

    default_category = ErrorCategory.INTERNAL


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "SpawnError",
    "InvocationError",
    "ForkError",
    "SpawnFailedError",
    "InternalError",
]
