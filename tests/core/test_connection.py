"""
Tests for schemaledger.core.connection - DB-API adapter and placeholders.
"""

from __future__ import annotations

import sqlite3
from unittest.mock import MagicMock, patch

import pytest

from schemaledger.core.connection import DBAPIDatabase, connect, translate_placeholders
from schemaledger.core.dialect import MYSQL, POSTGRESQL
from schemaledger.core.errors import DatabaseError
from schemaledger.core.protocols import Database, TransactionalDatabase


class TestTranslatePlaceholders:
    @pytest.mark.parametrize(
        "paramstyle, expected",
        [
            ("qmark", "VALUES (?, ?, ?)"),
            ("format", "VALUES (%s, %s, %s)"),
            ("pyformat", "VALUES (%s, %s, %s)"),
            ("numeric", "VALUES (:1, :2, :3)"),
            ("named", "VALUES (:p1, :p2, :p3)"),
        ],
    )
    def test_numbered_markers(self, paramstyle, expected):
        assert translate_placeholders("VALUES ($1, $2, $3)", paramstyle) == expected

    def test_anonymous_markers_renumbered_by_position(self):
        assert translate_placeholders("a = ? AND b = ?", "numeric") == "a = :1 AND b = :2"

    def test_multi_digit_markers(self):
        sql = POSTGRESQL.update_history_sql()
        out = translate_placeholders(sql, "format")
        assert "$" not in out
        assert out.count("%s") == 9

    def test_dialects_translate_identically(self):
        assert translate_placeholders(POSTGRESQL.insert_history_sql(), "qmark") == (
            MYSQL.insert_history_sql()
        )

    def test_unknown_paramstyle(self):
        with pytest.raises(ValueError, match="Unsupported paramstyle"):
            translate_placeholders("SELECT $1", "dollar")


class TestDBAPIDatabase:
    @pytest.fixture
    def db(self):
        database = DBAPIDatabase(sqlite3.connect(":memory:"), paramstyle="qmark")
        yield database
        database.close()

    def test_satisfies_protocols(self, db):
        assert isinstance(db, Database)
        assert isinstance(db, TransactionalDatabase)

    def test_execute_and_query(self, db):
        db.execute("CREATE TABLE t (id INTEGER, name TEXT)")
        db.execute("INSERT INTO t VALUES ($1, $2)", (1, "one"))
        assert db.query("SELECT id, name FROM t WHERE id = $1", (1,)) == [(1, "one")]

    def test_rows_are_tuples(self, db):
        db.raw.row_factory = sqlite3.Row
        db.execute("CREATE TABLE t (id INTEGER)")
        db.execute("INSERT INTO t VALUES (?)", (7,))
        assert db.query("SELECT id FROM t") == [(7,)]

    def test_statement_without_params_sent_verbatim(self):
        conn = MagicMock()
        cursor = conn.cursor.return_value
        DBAPIDatabase(conn, paramstyle="format").execute("SELECT '$1 costs ?'")
        cursor.execute.assert_called_once_with("SELECT '$1 costs ?'")
        cursor.close.assert_called_once()

    def test_named_params_bound_as_dict(self):
        conn = MagicMock()
        cursor = conn.cursor.return_value
        DBAPIDatabase(conn, paramstyle="named").execute("SELECT $1, $2", ("a", "b"))
        cursor.execute.assert_called_once_with("SELECT :p1, :p2", {"p1": "a", "p2": "b"})

    def test_cursor_closed_on_error(self):
        conn = MagicMock()
        cursor = conn.cursor.return_value
        cursor.execute.side_effect = RuntimeError("boom")
        with pytest.raises(RuntimeError):
            DBAPIDatabase(conn).query("SELECT 1")
        cursor.close.assert_called_once()

    def test_commit_and_rollback(self, db):
        db.execute("CREATE TABLE t (id INTEGER)")
        db.execute("INSERT INTO t VALUES (?)", (1,))
        db.commit()
        db.execute("INSERT INTO t VALUES (?)", (2,))
        db.rollback()
        assert db.query("SELECT id FROM t") == [(1,)]

    def test_invalid_paramstyle(self):
        with pytest.raises(ValueError):
            DBAPIDatabase(MagicMock(), paramstyle="dollar")

    def test_repr(self):
        assert "paramstyle='qmark'" in repr(DBAPIDatabase(MagicMock()))


class TestConnect:
    def test_sqlite_url(self):
        db = connect("sqlite://")
        try:
            assert db.paramstyle == "qmark"
            assert db.query("SELECT 1") == [(1,)]
        finally:
            db.close()

    def test_invalid_url(self):
        with pytest.raises(DatabaseError, match="invalid database url"):
            connect("not a url")

    def test_unknown_driver(self):
        with pytest.raises(DatabaseError, match="invalid database url"):
            connect("nosuchdb://localhost/x")

    def test_connection_failure_wrapped(self):
        from sqlalchemy.exc import OperationalError

        engine = MagicMock()
        engine.raw_connection.side_effect = OperationalError("connect", {}, Exception("refused"))
        with patch("sqlalchemy.create_engine", return_value=engine):
            with pytest.raises(DatabaseError, match="cannot connect"):
                connect("postgresql://localhost/app")
        engine.dispose.assert_called_once()

    def test_close_disposes_engine(self):
        engine = MagicMock()
        engine.dialect.paramstyle = "pyformat"
        with patch("sqlalchemy.create_engine", return_value=engine):
            db = connect("postgresql://localhost/app")

        engine.dispose.assert_not_called()
        db.close()
        engine.raw_connection.return_value.close.assert_called_once()
        engine.dispose.assert_called_once()


class TestClose:
    def test_without_engine_only_closes_connection(self):
        conn = MagicMock()
        DBAPIDatabase(conn).close()
        conn.close.assert_called_once()

    def test_engine_disposed_even_if_close_fails(self):
        conn = MagicMock()
        conn.close.side_effect = RuntimeError("already closed")
        engine = MagicMock()
        with pytest.raises(RuntimeError):
            DBAPIDatabase(conn, engine=engine).close()
        engine.dispose.assert_called_once()
