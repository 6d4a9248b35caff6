"""Runtime settings for schemaledger.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    Every value the CLI needs can come from a ``SCHEMALEDGER_*`` environment
    variable or a ``.env`` file; command-line flags override both.

Features:
    - **LedgerSettings:** database URL, migrations directory, logging options
    - **env_prefix:** ``SCHEMALEDGER_``
    - **.env file support:** Automatic loading via pydantic-settings
    - **Extra ignore:** Unknown env vars don't cause startup failures

Examples:
    >>> import os
    >>> os.environ["SCHEMALEDGER_DATABASE_URL"] = "postgresql://app@localhost/app"
    >>> get_settings().database_url
    'postgresql://app@localhost/app'

Tags:
    settings, configuration, pydantic, environment, schemaledger

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LedgerSettings(BaseSettings):
    """Settings shared by the CLI commands.

    Fields
    ──────
    database_url    : SQLAlchemy URL of the target database
    migrations_dir  : Root scanned for ``schemaledger.json`` group files
    log_level       : Structlog log level
    json_logs       : JSON log output; ``None`` auto-detects (JSON unless tty)
    """

    model_config = SettingsConfigDict(
        env_prefix="SCHEMALEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str | None = None

    # ── Discovery ────────────────────────────────────────────────
    migrations_dir: Path = Field(
        default_factory=lambda: Path("."),
        description="Root directory scanned for schemaledger.json files",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_LOG_LEVELS}")
        return level


def get_settings() -> LedgerSettings:
    """Load settings from the environment (fresh instance on every call)."""
    return LedgerSettings()


__all__ = ["LedgerSettings", "get_settings"]
