"""
syncspawn - Synchronous child-process execution.

- syncspawn.core: errors, structured logging, settings
- syncspawn.execution: the fork/exec engine (SpawnRunner) and capture facade
- syncspawn.cli: the ``syncspawn`` command
"""

__version__ = "0.1.0"

from syncspawn.core.errors import (  # noqa: E402
    ForkError,
    InvocationError,
    SpawnError,
    SpawnFailedError,
)
from syncspawn.execution import (  # noqa: E402
    CompletedSpawn,
    SpawnOptions,
    SpawnResult,
    SpawnRunner,
    StdioConfig,
    check_spawn,
    run_spawn,
    spawn,
)

__all__ = [
    "__version__",
    "SpawnRunner",
    "SpawnOptions",
    "SpawnResult",
    "StdioConfig",
    "run_spawn",
    "spawn",
    "check_spawn",
    "CompletedSpawn",
    "SpawnError",
    "InvocationError",
    "ForkError",
    "SpawnFailedError",
]
