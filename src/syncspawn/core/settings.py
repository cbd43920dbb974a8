"""Runtime settings for syncspawn.

Engine tunables are read from environment variables (prefix ``SYNCSPAWN_``)
and an optional ``.env`` file, validated once and cached.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not mid-spawn
    - **Environment-driven:** ``SYNCSPAWN_POLL_INTERVAL_MS=100`` just works
    - **Sensible defaults:** Works out of the box

Examples:
    >>> from syncspawn.core.settings import get_settings
    >>> get_settings().poll_interval_ms
    200

Tags:
    settings, configuration, pydantic, environment, syncspawn

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

import signal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SpawnSettings(BaseSettings):
    """Engine-wide settings.

    Fields
    ──────
    poll_interval_ms   : Sleep between non-blocking wait checks on the timeout path
    terminate_signal   : Signal sent to the child once its timeout elapses
    default_timeout_ms : Timeout applied when the caller gives none (0 = wait forever)
    log_level          : Structlog log level
    json_logs          : Force JSON (True) or console (False) logs; None = auto
    """

    model_config = SettingsConfigDict(
        env_prefix="SYNCSPAWN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Supervision ──────────────────────────────────────────────
    poll_interval_ms: int = Field(default=200, gt=0)
    terminate_signal: str = "SIGTERM"
    default_timeout_ms: int = Field(default=0, ge=0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("terminate_signal")
    @classmethod
    def _known_signal(cls, value: str) -> str:
        name = value.upper()
        if not name.startswith("SIG"):
            name = f"SIG{name}"
        if name not in signal.Signals.__members__:
            raise ValueError(f"unknown signal name: {value}")
        return name

    @property
    def poll_interval(self) -> float:
        """Poll interval in seconds."""
        return self.poll_interval_ms / 1000.0

    @property
    def terminate_signum(self) -> int:
        return int(signal.Signals[self.terminate_signal])


@lru_cache(maxsize=1)
def get_settings() -> SpawnSettings:
    """Return the process-wide settings instance."""
    return SpawnSettings()


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()


__all__ = ["SpawnSettings", "get_settings", "reset_settings"]
