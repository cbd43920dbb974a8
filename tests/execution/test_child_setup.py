"""Tests for child-side setup steps, with the os primitives patched out.

Patches go through ``child_os``, a copy of ``os`` installed only in
child.py, so the real module (and pytest's own fd capture) is untouched.
``run_child`` always ends in ``os._exit``; every test that reaches it patches
``_exit`` so the test process survives.
"""

from __future__ import annotations

import errno
import os
import signal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from syncspawn.execution import child as child_module
from syncspawn.execution._types import SpawnOptions, SpawnRequest, StdioConfig
from syncspawn.execution.argv import build_argv
from syncspawn.execution.child import (
    SETUP_FAILURE_EXIT,
    ChildPlan,
    SetupAbort,
    apply_environment,
    change_directory,
    decode_setup_failure,
    encode_setup_failure,
    redirect_stdio,
    replace_image,
    reset_signal_dispositions,
    run_child,
)

_REAL_DUP2 = os.dup2
_REAL_EXIT = os._exit


class _Exited(Exception):
    def __init__(self, code: int):
        self.code = code


@pytest.fixture
def child_os(monkeypatch):
    """Private stand-in for ``os`` as seen by child.py.

    Patching ``os.dup2`` itself would also hit pytest's fd capture.
    """
    proxy = SimpleNamespace(**vars(os))
    monkeypatch.setattr(child_module, "os", proxy)
    return proxy


@pytest.fixture
def child_signal(monkeypatch):
    """Private stand-in for ``signal`` as seen by child.py, recording dispositions."""
    installed: list[tuple[int, object]] = []
    proxy = SimpleNamespace(**vars(signal))
    proxy.signal = lambda signum, handler: installed.append((signum, handler))
    monkeypatch.setattr(child_module, "signal", proxy)
    return installed


@pytest.fixture
def fake_exit(monkeypatch, child_os):
    def _exit(code: int):
        raise _Exited(code)

    monkeypatch.setattr(child_os, "_exit", _exit)


@pytest.fixture
def writes(monkeypatch, child_os):
    recorded: list[tuple[int, bytes]] = []

    def _write(fd: int, data: bytes) -> int:
        recorded.append((fd, data))
        return len(data)

    monkeypatch.setattr(child_os, "write", _write)
    return recorded


class TestChildPlan:
    def test_from_request(self):
        request = SpawnRequest(
            executable="ls",
            args=("ls", "-l"),
            options=SpawnOptions(env={"A": "1"}, cwd="/tmp", report_setup_errors=True),
        )
        plan = ChildPlan.from_request(request)
        assert plan.file == "ls"
        assert plan.argv.decoded() == ["ls", "-l"]
        assert dict(plan.env) == {"A": "1"}
        assert plan.cwd == "/tmp"
        assert plan.report_errors is True

    def test_env_is_read_only(self):
        request = SpawnRequest(executable="ls", options=SpawnOptions(env={"A": "1"}))
        plan = ChildPlan.from_request(request)
        with pytest.raises(TypeError):
            plan.env["B"] = "2"  # type: ignore[index]


class TestRedirectStdio:
    def test_descriptors_are_duplicated_onto_slots(self, monkeypatch, child_os):
        dup2 = MagicMock()
        monkeypatch.setattr(child_os, "dup2", dup2)
        redirect_stdio(StdioConfig.pipe(10, 11, 12))
        assert [c.args for c in dup2.call_args_list] == [(10, 0), (11, 1), (12, 2)]

    def test_missing_descriptor_opens_default_device(self, monkeypatch, child_os):
        opened = []

        def _open(path, flags):
            opened.append((path, flags))
            return 30 + len(opened)

        dup2 = MagicMock()
        monkeypatch.setattr(child_os, "open", _open)
        monkeypatch.setattr(child_os, "dup2", dup2)

        redirect_stdio(StdioConfig.device(stdout=5))

        assert opened == [("/dev/stdin", os.O_RDONLY), ("/dev/stderr", os.O_WRONLY)]
        assert [c.args for c in dup2.call_args_list] == [(31, 0), (5, 1), (32, 2)]

    def test_dup2_failure_aborts(self, monkeypatch, child_os):
        def _dup2(fd, slot):
            raise OSError(errno.EBADF, "Bad file descriptor")

        monkeypatch.setattr(child_os, "dup2", _dup2)
        with pytest.raises(SetupAbort) as info:
            redirect_stdio(StdioConfig.pipe(90, 91, 92))
        assert info.value.stage == "stdio"
        assert info.value.errno == errno.EBADF

    def test_patched_dup2_stays_inside_child_module(self, monkeypatch, child_os):
        def _dup2(fd, slot):
            raise OSError(errno.EBADF, "Bad file descriptor")

        monkeypatch.setattr(child_os, "dup2", _dup2)
        assert os.dup2 is _REAL_DUP2
        assert os._exit is _REAL_EXIT
        assert child_module.os.dup2 is _dup2


class TestResetSignals:
    def test_pipe_and_file_size_signals_restored(self, child_signal):
        reset_signal_dispositions()
        assert child_signal == [
            (signal.SIGPIPE, signal.SIG_DFL),
            (signal.SIGXFSZ, signal.SIG_DFL),
        ]


class TestApplyEnvironment:
    def test_sets_strings_and_skips_others(self, monkeypatch):
        monkeypatch.delenv("SYNCSPAWN_T_A", raising=False)
        monkeypatch.delenv("SYNCSPAWN_T_B", raising=False)
        apply_environment({"SYNCSPAWN_T_A": "one", "SYNCSPAWN_T_B": 2})
        assert os.environ["SYNCSPAWN_T_A"] == "one"
        assert "SYNCSPAWN_T_B" not in os.environ
        monkeypatch.delenv("SYNCSPAWN_T_A")

    def test_overwrites_existing(self, monkeypatch):
        monkeypatch.setenv("SYNCSPAWN_T_C", "old")
        apply_environment({"SYNCSPAWN_T_C": "new"})
        assert os.environ["SYNCSPAWN_T_C"] == "new"

    def test_rejected_name_is_skipped(self, monkeypatch):
        monkeypatch.delenv("SYNCSPAWN_T_D", raising=False)
        apply_environment({"BAD=NAME": "x", "SYNCSPAWN_T_D": "ok"})
        assert os.environ["SYNCSPAWN_T_D"] == "ok"
        monkeypatch.delenv("SYNCSPAWN_T_D")


class TestChangeDirectoryAndExec:
    def test_none_is_noop(self, monkeypatch, child_os):
        chdir = MagicMock()
        monkeypatch.setattr(child_os, "chdir", chdir)
        change_directory(None)
        chdir.assert_not_called()

    def test_missing_directory_aborts(self, tmp_path):
        with pytest.raises(SetupAbort) as info:
            change_directory(str(tmp_path / "missing"))
        assert info.value.stage == "cwd"
        assert info.value.errno == errno.ENOENT

    def test_exec_failure_aborts(self, monkeypatch, child_os):
        def _execvp(file, argv):
            raise FileNotFoundError(errno.ENOENT, "No such file or directory")

        monkeypatch.setattr(child_os, "execvp", _execvp)
        with pytest.raises(SetupAbort) as info:
            replace_image("nope", build_argv("nope", []))
        assert info.value.stage == "exec"
        assert info.value.errno == errno.ENOENT
        assert "nope" in info.value.message

    def test_exec_receives_exact_vector(self, monkeypatch, child_os):
        execvp = MagicMock(side_effect=OSError(errno.EACCES, "denied"))
        monkeypatch.setattr(child_os, "execvp", execvp)
        with pytest.raises(SetupAbort):
            replace_image("prog", build_argv("prog", ["name", "a b"]))
        execvp.assert_called_once_with("prog", [b"name", b"a b"])


class TestErrorPipeEncoding:
    def test_encode_decode(self):
        data = encode_setup_failure("cwd", 2, "/nope: No such file or directory")
        failure = decode_setup_failure(data)
        assert failure is not None
        assert failure.stage == "cwd"
        assert failure.errno == 2
        assert failure.message == "/nope: No such file or directory"

    def test_empty_means_exec_succeeded(self):
        assert decode_setup_failure(b"") is None

    def test_garbage_errno(self):
        failure = decode_setup_failure(b"exec:xx:boom")
        assert failure is not None
        assert failure.errno == 0


class TestRunChild:
    def _plan(self, **kwargs) -> ChildPlan:
        defaults = dict(
            file="prog", argv=build_argv("prog", ["prog"]), stdio=StdioConfig.pipe(3, 4, 5)
        )
        defaults.update(kwargs)
        return ChildPlan(**defaults)

    def test_setup_failure_exits_one_and_reports(self, monkeypatch, child_os, fake_exit, writes):
        monkeypatch.setattr("syncspawn.execution.child.reset_signal_dispositions", lambda: None)
        monkeypatch.setattr(child_os, "dup2", MagicMock())

        with pytest.raises(_Exited) as info:
            run_child(self._plan(cwd="/definitely/not/here"), errpipe_write=77)

        assert info.value.code == SETUP_FAILURE_EXIT == 1
        fds = [fd for fd, _ in writes]
        assert fds == [2, 77]
        assert writes[0][1].startswith(b"errno: ")
        assert writes[1][1].startswith(b"cwd:")

    def test_without_error_pipe_only_stderr(self, monkeypatch, child_os, fake_exit, writes):
        monkeypatch.setattr("syncspawn.execution.child.reset_signal_dispositions", lambda: None)
        monkeypatch.setattr(child_os, "dup2", MagicMock())
        monkeypatch.setattr(
            child_os,
            "execvp",
            MagicMock(side_effect=FileNotFoundError(errno.ENOENT, "No such file or directory")),
        )

        with pytest.raises(_Exited):
            run_child(self._plan())

        assert [fd for fd, _ in writes] == [2]
        assert b"No such file or directory" in writes[0][1]

    def test_unexpected_error_still_exits(self, monkeypatch, fake_exit, writes):
        def _boom():
            raise RuntimeError("unexpected")

        monkeypatch.setattr("syncspawn.execution.child.reset_signal_dispositions", _boom)

        with pytest.raises(_Exited) as info:
            run_child(self._plan(), errpipe_write=9)

        assert info.value.code == 1
        assert writes[1][0] == 9
        assert writes[1][1].startswith(b"internal:0:RuntimeError")

    def test_steps_run_in_order(self, monkeypatch, fake_exit, writes):
        order: list[str] = []
        monkeypatch.setattr(
            "syncspawn.execution.child.reset_signal_dispositions", lambda: order.append("signals")
        )
        monkeypatch.setattr(
            "syncspawn.execution.child.redirect_stdio", lambda stdio: order.append("stdio")
        )
        monkeypatch.setattr(
            "syncspawn.execution.child.apply_environment", lambda env: order.append("env")
        )
        monkeypatch.setattr(
            "syncspawn.execution.child.change_directory", lambda cwd: order.append("cwd")
        )

        def _replace(file, argv):
            order.append("exec")
            raise SetupAbort("exec", errno.ENOENT, "prog: missing")

        monkeypatch.setattr("syncspawn.execution.child.replace_image", _replace)

        with pytest.raises(_Exited):
            run_child(self._plan())

        assert order == ["signals", "stdio", "env", "cwd", "exec"]
