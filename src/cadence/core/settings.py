"""Environment-driven settings for cadence.

Wrapper configuration is passed explicitly at wrap time; settings only
provide the defaults used when a caller leaves a value out, plus the
logging knobs.

Features:
    - **CadenceSettings:** log_level, json_logs, retry defaults
    - **env_prefix:** ``CADENCE_`` (e.g. ``CADENCE_RETRY_MAX_ATTEMPTS=5``)
    - **.env file support:** Automatic loading via pydantic-settings
    - **Extra ignore:** Unknown env vars don't cause startup failures

Examples:
    >>> from cadence.core.settings import get_settings
    >>> get_settings().retry_max_attempts
    3

Tags:
    settings, configuration, pydantic, environment, cadence

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CadenceSettings(BaseSettings):
    """Defaults shared by all cadence wrappers.

    Fields
    ──────
    log_level           : Structlog log level
    json_logs           : Force JSON (True) / console (False); None = auto
    retry_max_attempts  : Attempts used by ``retry`` when not given
    retry_base_delay    : First backoff delay (seconds) used by ``retry``
    """

    model_config = SettingsConfigDict(
        env_prefix="CADENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Resilience defaults ──────────────────────────────────────
    retry_max_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=1.0, ge=0.0)


_settings: CadenceSettings | None = None


def get_settings() -> CadenceSettings:
    """Load and cache a :class:`CadenceSettings` instance."""
    global _settings
    if _settings is None:
        _settings = CadenceSettings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None


__all__ = ["CadenceSettings", "get_settings", "reset_settings"]
