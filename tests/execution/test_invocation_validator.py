"""Tests for InvocationValidator — checks made before any fork."""

from __future__ import annotations

from pathlib import Path

import pytest

from syncspawn.core.errors import ErrorCategory, InvocationError
from syncspawn.execution._types import SpawnOptions
from syncspawn.execution.validator import InvocationValidator


@pytest.fixture
def validator() -> InvocationValidator:
    return InvocationValidator()


class TestValidInvocations:
    def test_minimal(self, validator):
        request = validator.validate_or_raise("true", [])
        assert request.executable == "true"
        assert request.args == ()
        assert request.options == SpawnOptions()

    def test_pathlike_executable(self, validator, tmp_path: Path):
        request = validator.validate_or_raise(tmp_path / "prog", ["prog"])
        assert request.executable == str(tmp_path / "prog")

    def test_tuple_args_and_mapping_options(self, validator):
        request = validator.validate_or_raise("ls", ("ls", "-l"), {"timeout": 100})
        assert request.args == ("ls", "-l")
        assert request.options.timeout == 100


class TestViolations:
    @pytest.mark.parametrize("executable", [None, 42, b"ls", ""])
    def test_bad_executable(self, validator, executable):
        assert validator.validate(executable, [], None)

    def test_nul_in_executable(self, validator):
        assert validator.validate("l\0s", [], None) == [
            "executable must not contain NUL characters"
        ]

    @pytest.mark.parametrize("args", ["ls -l", b"ls", None, 5])
    def test_args_not_a_sequence(self, validator, args):
        violations = validator.validate("ls", args, None)
        assert len(violations) == 1
        assert violations[0].startswith("args must be a sequence of strings")

    def test_non_string_elements(self, validator):
        assert validator.validate("ls", ["ls", 1, "ok", None], None) == [
            "args[1] must be a string, got int",
            "args[3] must be a string, got NoneType",
        ]

    def test_options_wrong_type(self, validator):
        assert validator.validate("ls", [], 200) == ["options must be a mapping, got int"]

    def test_options_field_errors(self, validator):
        violations = validator.validate("ls", [], {"timeout": "soon"})
        assert len(violations) == 1
        assert violations[0].startswith("options.timeout:")

    def test_all_violations_collected(self, validator):
        violations = validator.validate(None, "x", {"timeout": -1})
        assert len(violations) == 3

    def test_validate_or_raise(self, validator):
        with pytest.raises(InvocationError) as info:
            validator.validate_or_raise("", [1])
        error = info.value
        assert error.category == ErrorCategory.VALIDATION
        assert error.violations == [
            "executable must not be empty",
            "args[0] must be a string, got int",
        ]
