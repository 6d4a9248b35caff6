"""
Shared pytest fixtures for schemaledger tests.

This module provides:
- In-memory ``FakeDatabase`` fixtures reporting PostgreSQL / MariaDB banners
- sqlite3-backed ``DBAPIDatabase`` fixtures whose ``version()`` reports a
  PostgreSQL or MariaDB banner, for end-to-end runs through a real driver
- An isolated ``MigrationEngine``
- A migration project tree on disk
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

import pytest

from schemaledger.core.connection import DBAPIDatabase
from schemaledger.core.migrations import MigrationEngine
from tests._support.fakes import MARIADB_BANNER, PG_BANNER, FakeDatabase


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


@pytest.fixture
def engine() -> MigrationEngine:
    """Engine with its own lock, isolated from the module-level default."""
    return MigrationEngine(threading.Lock())


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase(PG_BANNER)


@pytest.fixture
def fake_mysql_db() -> FakeDatabase:
    return FakeDatabase(MARIADB_BANNER)


def _sqlite_database(banner: str) -> DBAPIDatabase:
    sqlite3.register_adapter(datetime, lambda d: d.isoformat())
    conn = sqlite3.connect(":memory:")
    conn.create_function("version", 0, lambda: banner)
    return DBAPIDatabase(conn, paramstyle="qmark")


@pytest.fixture
def sqlite_pg() -> Iterator[DBAPIDatabase]:
    """Real sqlite3 connection reporting a PostgreSQL banner."""
    db = _sqlite_database(PG_BANNER)
    yield db
    db.close()


@pytest.fixture
def sqlite_maria() -> Iterator[DBAPIDatabase]:
    """Real sqlite3 connection reporting a MariaDB banner."""
    db = _sqlite_database(MARIADB_BANNER)
    yield db
    db.close()


@pytest.fixture
def schema_root(tmp_path: Path) -> Path:
    """Project tree with one group file declaring two groups."""
    root = tmp_path / "db"
    (root / "schema" / "accounts").mkdir(parents=True)
    (root / "schema" / "billing").mkdir(parents=True)
    (root / "schemaledger.json").write_text(
        '{"packages": ['
        '{"group": "accounts", "schema": "schema/accounts"},'
        '{"group": "billing", "schema": "schema/billing"}'
        "]}",
        encoding="utf-8",
    )
    (root / "schema" / "accounts" / "0001_users.sql").write_text(
        "-- users table\n"
        "CREATE TABLE users (\n"
        "    id   INTEGER PRIMARY KEY,\n"
        "    name TEXT NOT NULL\n"
        ");\n",
        encoding="utf-8",
    )
    (root / "schema" / "accounts" / "0002_seed.sql").write_text(
        "INSERT INTO users (id, name) VALUES (1, 'root');\n"
        "/* second admin */\n"
        "INSERT INTO users (id, name) VALUES (2, 'ops');\n",
        encoding="utf-8",
    )
    (root / "schema" / "billing" / "0001_invoices.sql").write_text(
        "CREATE TABLE invoices (id INTEGER PRIMARY KEY, total INTEGER);\n",
        encoding="utf-8",
    )
    (root / "schema" / "billing" / "README.md").write_text("not a migration\n", encoding="utf-8")
    return root
