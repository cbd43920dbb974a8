"""Spawn engine: fork/exec a child, supervise it, decode its wait status.

Architecture::

    _types.py         SpawnOptions, SpawnRequest, SpawnResult, ProcessBackend
    argv.py           Argument vector construction
    child.py          Child-side setup (stdio, env, cwd, exec)
    policies.py       Named failure-suppression policies
    backends.py       ForkExecBackend (real fork/exec/waitpid)
    mock_backends.py  Test doubles with canned wait statuses
    supervisor.py     Blocking / polling wait with timeout
    result.py         Wait-status decoding, SpawnResult assembly
    validator.py      Invocation checks before any fork
    runner.py         SpawnRunner, run_spawn
    capture.py        spawn / check_spawn with temp-file capture
"""

from syncspawn.execution._types import (
    ChildHandle,
    ProcessBackend,
    RunnerState,
    SetupFailure,
    SpawnOptions,
    SpawnRequest,
    SpawnResult,
    StdioConfig,
    StdioMode,
)
from syncspawn.execution.argv import ArgVector, build_argv
from syncspawn.execution.backends import ForkExecBackend
from syncspawn.execution.capture import CompletedSpawn, check_spawn, spawn
from syncspawn.execution.child import ChildPlan
from syncspawn.execution.policies import BEST_EFFORT_ENV, BEST_EFFORT_SIGNAL, FailurePolicy
from syncspawn.execution.result import assemble_result, decode_status, signal_name
from syncspawn.execution.runner import SpawnRunner, run_spawn
from syncspawn.execution.supervisor import Supervisor, WaitOutcome
from syncspawn.execution.validator import InvocationValidator

__all__ = [
    # types
    "ChildHandle",
    "ProcessBackend",
    "RunnerState",
    "SetupFailure",
    "SpawnOptions",
    "SpawnRequest",
    "SpawnResult",
    "StdioConfig",
    "StdioMode",
    # components
    "ArgVector",
    "build_argv",
    "ChildPlan",
    "ForkExecBackend",
    "FailurePolicy",
    "BEST_EFFORT_ENV",
    "BEST_EFFORT_SIGNAL",
    "Supervisor",
    "WaitOutcome",
    "assemble_result",
    "decode_status",
    "signal_name",
    "InvocationValidator",
    # entry points
    "SpawnRunner",
    "run_spawn",
    "CompletedSpawn",
    "spawn",
    "check_spawn",
]
