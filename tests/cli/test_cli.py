"""Tests for the ``schemaledger`` CLI commands."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog
from typer.testing import CliRunner

from schemaledger import __version__
from schemaledger.cli.app import app
from schemaledger.core.connection import DBAPIDatabase
from tests._support.fakes import PG_BANNER

runner = CliRunner()


@pytest.fixture(autouse=True)
def _quiet(monkeypatch, tmp_path):
    """Silence structured logs and isolate from the caller's environment."""
    monkeypatch.chdir(tmp_path)
    for name in ("DATABASE_URL", "MIGRATIONS_DIR", "LOG_LEVEL", "JSON_LOGS"):
        monkeypatch.delenv(f"SCHEMALEDGER_{name}", raising=False)

    def _configure(**_kwargs):
        structlog.configure(
            processors=[structlog.processors.KeyValueRenderer()],
            logger_factory=structlog.ReturnLoggerFactory(),
        )

    with patch("schemaledger.cli.app.configure_logging", side_effect=_configure):
        yield
    structlog.reset_defaults()


@pytest.fixture
def database(tmp_path: Path):
    """Patch ``open_database`` to return a fresh connection to one sqlite file."""
    path = tmp_path / "app.db"
    sqlite3.register_adapter(datetime, lambda d: d.isoformat())

    def _open(settings):
        conn = sqlite3.connect(path)
        conn.create_function("version", 0, lambda: PG_BANNER)
        return DBAPIDatabase(conn, paramstyle="qmark")

    with patch("schemaledger.cli.app.open_database", side_effect=_open):
        yield path


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestApply:
    def test_apply_project(self, database, schema_root):
        result = runner.invoke(app, ["apply", "--dir", str(schema_root)])
        assert result.exit_code == 0, result.output
        assert "Applied 3 migration(s)" in result.output

        conn = sqlite3.connect(database)
        assert conn.execute("SELECT COUNT(*) FROM users").fetchone() == (2,)
        conn.close()

    def test_second_apply(self, database, schema_root):
        runner.invoke(app, ["apply", "--dir", str(schema_root)])
        result = runner.invoke(app, ["apply", "--dir", str(schema_root)])
        assert result.exit_code == 0
        assert "Applied 0 migration(s)" in result.output

    def test_drift_exits_nonzero(self, database, schema_root):
        runner.invoke(app, ["apply", "--dir", str(schema_root)])
        (schema_root / "schema" / "billing" / "0001_invoices.sql").write_text(
            "CREATE TABLE invoices (id INTEGER);\n", encoding="utf-8"
        )
        result = runner.invoke(app, ["apply", "--dir", str(schema_root)])
        assert result.exit_code == 1
        assert "DRIFT" in result.output

    def test_parse_error_exits_nonzero(self, database, schema_root):
        (schema_root / "schema" / "billing" / "0002_broken.sql").write_text(
            "ALTER TABLE invoices ADD COLUMN due TEXT", encoding="utf-8"
        )
        result = runner.invoke(app, ["apply", "--dir", str(schema_root)])
        assert result.exit_code == 1
        assert "PARSE" in result.output

    def test_no_database_configured(self, schema_root):
        result = runner.invoke(app, ["apply", "--dir", str(schema_root)])
        assert result.exit_code == 1
        assert "CONFIG" in result.output

    def test_unsupported_engine_rolls_back(self, monkeypatch, schema_root):
        monkeypatch.setenv("SCHEMALEDGER_MIGRATIONS_DIR", str(schema_root))
        with patch("schemaledger.cli.app.open_database") as mock_open:
            mock_open.return_value.query.return_value = [("3.45.1",)]
            result = runner.invoke(app, ["apply"])
        assert result.exit_code == 1
        assert "DIALECT" in result.output
        assert mock_open.call_args.args[0].migrations_dir == schema_root
        mock_open.return_value.rollback.assert_called_once()
        mock_open.return_value.close.assert_called_once()


class TestStatus:
    def test_pending_json(self, database, schema_root):
        result = runner.invoke(app, ["status", "--dir", str(schema_root), "--json"])
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert [(r["group"], r["version"]) for r in rows] == [
            ("accounts", 1),
            ("accounts", 2),
            ("billing", 1),
        ]
        assert rows[1]["statements"] == 2

    def test_status_executes_nothing(self, database, schema_root):
        runner.invoke(app, ["status", "--dir", str(schema_root)])
        conn = sqlite3.connect(database)
        tables = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        conn.close()
        assert ("users",) not in tables

    def test_status_after_apply(self, database, schema_root):
        runner.invoke(app, ["apply", "--dir", str(schema_root)])
        result = runner.invoke(app, ["status", "--dir", str(schema_root)])
        assert result.exit_code == 0
        assert "No items" in result.output
        assert "3 already applied" in result.output

    def test_rollback_failure_keeps_original_error(self, schema_root):
        with patch("schemaledger.cli.app.open_database") as mock_open:
            db = mock_open.return_value
            db.query.return_value = [("3.45.1",)]
            db.rollback.side_effect = RuntimeError("connection lost")
            result = runner.invoke(app, ["status", "--dir", str(schema_root)])
        assert result.exit_code == 1
        assert "DIALECT" in result.output
        assert not isinstance(result.exception, RuntimeError)
        db.close.assert_called_once()

    def test_rollback_failure_after_success_ignored(self, tmp_path, schema_root):
        class LostOnRollback(DBAPIDatabase):
            def rollback(self):
                raise sqlite3.OperationalError("connection lost")

        def _open(settings):
            conn = sqlite3.connect(tmp_path / "lost.db")
            conn.create_function("version", 0, lambda: PG_BANNER)
            return LostOnRollback(conn, paramstyle="qmark")

        with patch("schemaledger.cli.app.open_database", side_effect=_open):
            result = runner.invoke(app, ["status", "--dir", str(schema_root), "--json"])
        assert result.exit_code == 0, result.output
        assert len(json.loads(result.stdout)) == 3


class TestHistory:
    def test_empty_history(self, database):
        result = runner.invoke(app, ["history"])
        assert result.exit_code == 0
        assert "No items" in result.output

    def test_history_json(self, database, schema_root):
        runner.invoke(app, ["apply", "--dir", str(schema_root)])
        result = runner.invoke(app, ["history", "--json"])
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert [(r["group"], r["version"], r["status"]) for r in rows] == [
            ("accounts", 1, "success"),
            ("accounts", 2, "success"),
            ("billing", 1, "success"),
        ]
        assert rows[0]["type"] == "sql"


class TestChecksum:
    def test_prints_checksum(self, schema_root):
        from schemaledger.core.discovery import parse_file
        from schemaledger.core.hashing import compute_checksum

        path = schema_root / "schema" / "accounts" / "0002_seed.sql"
        result = runner.invoke(app, ["checksum", str(path)])
        assert result.exit_code == 0
        assert result.output.strip() == compute_checksum(parse_file(path))

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["checksum", str(tmp_path / "nope.sql")])
        assert result.exit_code != 0
