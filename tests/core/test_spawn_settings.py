"""Tests for syncspawn.core.settings — env-driven engine settings."""

from __future__ import annotations

import signal

import pytest
from pydantic import ValidationError

from syncspawn.core.settings import SpawnSettings, get_settings, reset_settings


class TestDefaults:
    def test_defaults(self, monkeypatch):
        for name in ("POLL_INTERVAL_MS", "TERMINATE_SIGNAL", "DEFAULT_TIMEOUT_MS"):
            monkeypatch.delenv(f"SYNCSPAWN_{name}", raising=False)
        settings = SpawnSettings(_env_file=None)
        assert settings.poll_interval_ms == 200
        assert settings.poll_interval == pytest.approx(0.2)
        assert settings.terminate_signal == "SIGTERM"
        assert settings.terminate_signum == signal.SIGTERM
        assert settings.default_timeout_ms == 0
        assert settings.json_logs is None


class TestEnvironment:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("SYNCSPAWN_POLL_INTERVAL_MS", "25")
        monkeypatch.setenv("SYNCSPAWN_TERMINATE_SIGNAL", "int")
        settings = SpawnSettings(_env_file=None)
        assert settings.poll_interval_ms == 25
        assert settings.terminate_signal == "SIGINT"
        assert settings.terminate_signum == signal.SIGINT

    def test_unknown_signal_rejected(self):
        with pytest.raises(ValidationError):
            SpawnSettings(terminate_signal="SIGNOPE", _env_file=None)

    def test_poll_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            SpawnSettings(poll_interval_ms=0, _env_file=None)


class TestCache:
    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_reset_rereads_environment(self, monkeypatch):
        monkeypatch.setenv("SYNCSPAWN_DEFAULT_TIMEOUT_MS", "10")
        reset_settings()
        first = get_settings()
        assert first.default_timeout_ms == 10

        monkeypatch.setenv("SYNCSPAWN_DEFAULT_TIMEOUT_MS", "20")
        assert get_settings().default_timeout_ms == 10
        reset_settings()
        assert get_settings().default_timeout_ms == 20
