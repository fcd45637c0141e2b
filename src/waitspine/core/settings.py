"""Environment-driven defaults for the polling engine.

``WaitSettings`` holds the values that are not part of a single wait call:
the default delay, the grace buffer of the projected-timeout check and the
logging setup used by the CLI.

Examples:
    >>> from waitspine.core.settings import get_settings
    >>> get_settings().default_delay
    1000.0

    Overriding through the environment::

        WAITSPINE_DEFAULT_DELAY=250 WAITSPINE_LOG_LEVEL=DEBUG waitspine run -- make check

Tags:
    settings, configuration, pydantic, environment, waitspine
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WaitSettings(BaseSettings):
    """Process-wide engine defaults.

    Fields
    ──────
    default_delay : Delay in ms between attempts when a call sets none
    timeout_grace : Slack in ms allowed by the projected-timeout check
    log_level     : Structlog log level used by ``configure_logging``
    log_json      : Force JSON (True) / console (False) output, None = auto
    """

    model_config = SettingsConfigDict(
        env_prefix="WAITSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Timing ───────────────────────────────────────────────────
    default_delay: float = Field(default=1000.0, gt=0)
    timeout_grace: float = Field(default=10.0, ge=0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "WARNING"
    log_json: bool | None = None


@lru_cache(maxsize=1)
def get_settings() -> WaitSettings:
    """Return the cached settings singleton."""
    return WaitSettings()


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()


__all__ = ["WaitSettings", "get_settings", "reset_settings"]
