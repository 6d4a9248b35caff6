"""
CLI utility helpers -- output formatting, settings and connection handling.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from schemaledger.core.connection import DBAPIDatabase, connect
from schemaledger.core.errors import ConfigError, MigrationError
from schemaledger.core.logging import get_logger
from schemaledger.core.settings import LedgerSettings, get_settings

console = Console()
err_console = Console(stderr=True)
logger = get_logger(__name__)


# ── Settings / connection helpers ────────────────────────────────────────


def resolve_settings(
    database: str | None = None,
    directory: Path | None = None,
) -> LedgerSettings:
    """Load settings, letting explicit CLI flags win over the environment."""
    settings = get_settings()
    updates: dict[str, Any] = {}
    if database:
        updates["database_url"] = database
    if directory is not None:
        updates["migrations_dir"] = directory
    return settings.model_copy(update=updates) if updates else settings


def open_database(settings: LedgerSettings) -> DBAPIDatabase:
    """Connect to ``settings.database_url``."""
    if not settings.database_url:
        raise ConfigError(
            "no database configured. Pass --database or set SCHEMALEDGER_DATABASE_URL"
        )
    return connect(settings.database_url)


def discard(db: DBAPIDatabase) -> None:
    """Roll back and close ``db`` after read-only work.

    Failures are logged so they cannot mask the command's own outcome.
    """
    try:
        db.rollback()
    except Exception as exc:
        logger.warning("database.rollback_failed", error=str(exc))
    try:
        db.close()
    except Exception as exc:
        logger.warning("database.close_failed", error=str(exc))


def fail(exc: MigrationError) -> NoReturn:
    """Report a migration error and exit with status 1."""
    err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def output_rows(items: list[Any], *, as_json: bool = False, title: str = "") -> None:
    """Render a list of dataclasses/dicts as JSON or a Rich table."""
    rows = [{k: _plain(v) for k, v in _to_dict(item).items()} for item in items]

    if as_json:
        console.print_json(json.dumps(rows, default=str))
        return

    if not rows:
        console.print("[dim]No items.[/dim]")
        return

    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)
