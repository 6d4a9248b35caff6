"""
Root Typer application for the schemaledger CLI.

``apply`` is the fail-fast startup path: any migration error rolls the
transaction back and exits with status 1.
"""

from __future__ import annotations

from pathlib import Path

import typer
from typer import Typer

from schemaledger.cli.utils import (
    console,
    discard,
    fail,
    open_database,
    output_rows,
    resolve_settings,
)
from schemaledger.core.discovery import parse_file, scan
from schemaledger.core.errors import MigrationError
from schemaledger.core.hashing import compute_checksum
from schemaledger.core.logging import configure_logging
from schemaledger.core.migrations import (
    MigrationEngine,
    apply_in_transaction,
    ensure_table,
    load_history,
)

app = Typer(
    name="schemaledger",
    help="schemaledger: forward-only versioned SQL migrations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

_DatabaseOpt = typer.Option(None, "--database", "-d", help="SQLAlchemy database URL")
_DirOpt = typer.Option(None, "--dir", help="Root scanned for schemaledger.json files")


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from schemaledger import __version__

        typer.echo(f"schemaledger {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """schemaledger CLI: apply and inspect schema migrations."""
    settings = resolve_settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def apply(
    database: str | None = _DatabaseOpt,
    directory: Path | None = _DirOpt,
) -> None:
    """Apply all pending migrations inside one transaction."""
    settings = resolve_settings(database, directory)
    try:
        migrations = scan(settings.migrations_dir)
        db = open_database(settings)
    except MigrationError as exc:
        fail(exc)

    try:
        result = apply_in_transaction(db, migrations)
    except MigrationError as exc:
        fail(exc)
    finally:
        db.close()

    console.print(
        f"[green]Applied {len(result.applied)} migration(s)[/green], "
        f"{len(result.skipped)} already applied."
    )


@app.command()
def status(
    database: str | None = _DatabaseOpt,
    directory: Path | None = _DirOpt,
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show pending migrations without executing them."""
    settings = resolve_settings(database, directory)
    try:
        migrations = scan(settings.migrations_dir)
        db = open_database(settings)
    except MigrationError as exc:
        fail(exc)

    try:
        plan = MigrationEngine().plan(db, migrations)
    except MigrationError as exc:
        fail(exc)
    finally:
        discard(db)

    rows = [
        {"group": m.group, "version": m.version, "script": m.script_name,
         "statements": len(m.statements), "checksum": m.checksum}
        for m in plan.ordered()
    ]
    output_rows(rows, as_json=json_out, title="Pending Migrations")
    if not json_out:
        console.print(f"[dim]{len(plan.skipped)} already applied.[/dim]")


@app.command()
def history(
    database: str | None = _DatabaseOpt,
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show the migration history table."""
    settings = resolve_settings(database)
    try:
        db = open_database(settings)
    except MigrationError as exc:
        fail(exc)

    try:
        ensure_table(db)
        entries = load_history(db)
        db.commit()
    except MigrationError as exc:
        fail(exc)
    finally:
        db.close()

    entries.sort(key=lambda e: (e.group, e.version))
    output_rows(entries, as_json=json_out, title="Migration History")


@app.command()
def checksum(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="SQL migration file"),
) -> None:
    """Print the checksum recorded for a migration file."""
    try:
        statements = parse_file(path)
    except MigrationError as exc:
        fail(exc)
    typer.echo(compute_checksum(statements))
