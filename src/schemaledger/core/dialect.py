"""SQL dialects for the migration history table.

The history table has the same schema and the same statements on every
supported backend; only the parameter placeholder style differs. A
``Dialect`` therefore carries exactly the two parameterized statements the
history store needs (insert and update) rendered in its placeholder style.

Manifesto:
    The set of dialects is closed. Supporting another engine means adding
    one class here and one banner match in ``detect_dialect``; there is no
    registry to plug into.

    - **PostgreSQL:** numbered ``$1, $2, ...`` placeholders
    - **MySQL / MariaDB:** anonymous ``?`` placeholders

Architecture::

    detect_dialect(db)
        │  SELECT version()
        ▼
    "PostgreSQL 12.2 on x86_64..."   → PostgreSQLDialect   ($n)
    "10.4.11-MariaDB"                → MySQLDialect        (?)
    "8.0.36" + "mysql" in banner     → MySQLDialect        (?)
    anything else                    → UnsupportedDialectError

Examples:
    >>> PostgreSQLDialect().placeholders(3)
    '$1, $2, $3'
    >>> MySQLDialect().placeholders(3)
    '?, ?, ?'

Tags:
    dialect, sql, placeholders, postgresql, mysql, mariadb, schemaledger

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from schemaledger.core.errors import DatabaseError, UnsupportedDialectError
from schemaledger.core.logging import get_logger
from schemaledger.core.protocols import Database

logger = get_logger(__name__)

VERSION_QUERY = "SELECT version()"

HISTORY_TABLE = "migration_schema_history"

# Column order shared by INSERT and SELECT.
HISTORY_COLUMNS = (
    "group",
    "version",
    "script",
    "type",
    "checksum",
    "applied_at",
    "execution_duration",
    "status",
    "log",
)

# Non-key columns written by UPDATE, followed by the key in the WHERE clause.
_UPDATE_COLUMNS = HISTORY_COLUMNS[2:]
_KEY_COLUMNS = HISTORY_COLUMNS[:2]


def quote(identifier: str) -> str:
    return f'"{identifier}"'


@runtime_checkable
class Dialect(Protocol):
    """History-table SQL for one database backend."""

    @property
    def name(self) -> str:
        """Dialect name (``'postgresql'`` or ``'mysql'``)."""
        ...

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list."""
        ...

    def insert_history_sql(self) -> str:
        """INSERT of all history columns, parameters in ``HISTORY_COLUMNS`` order."""
        ...

    def update_history_sql(self) -> str:
        """UPDATE of the non-key columns; key parameters (group, version) last."""
        ...


class _HistoryStatements:
    """Builds the two history statements from ``placeholder()``."""

    def placeholder(self, index: int) -> str:
        raise NotImplementedError

    def placeholders(self, count: int) -> str:
        return ", ".join(self.placeholder(i) for i in range(count))

    def insert_history_sql(self) -> str:
        cols = ", ".join(quote(c) for c in HISTORY_COLUMNS)
        ph = self.placeholders(len(HISTORY_COLUMNS))
        return f"INSERT INTO {quote(HISTORY_TABLE)} ({cols}) VALUES ({ph})"

    def update_history_sql(self) -> str:
        sets = ", ".join(
            f"{quote(c)} = {self.placeholder(i)}" for i, c in enumerate(_UPDATE_COLUMNS)
        )
        offset = len(_UPDATE_COLUMNS)
        where = " AND ".join(
            f"{quote(c)} = {self.placeholder(offset + i)}" for i, c in enumerate(_KEY_COLUMNS)
        )
        return f"UPDATE {quote(HISTORY_TABLE)} SET {sets} WHERE {where}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))


class PostgreSQLDialect(_HistoryStatements):
    """PostgreSQL dialect - ``$1, $2`` numbered placeholders."""

    @property
    def name(self) -> str:
        return "postgresql"

    def placeholder(self, index: int) -> str:
        return f"${index + 1}"


class MySQLDialect(_HistoryStatements):
    """MySQL and MariaDB dialect - ``?`` placeholders."""

    @property
    def name(self) -> str:
        return "mysql"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"


POSTGRESQL = PostgreSQLDialect()
MYSQL = MySQLDialect()


def dialect_from_banner(banner: str) -> Dialect:
    """Select a dialect from a database version banner.

    Raises:
        UnsupportedDialectError: If the banner names no supported engine.
    """
    text = banner.lower()
    if "postgresql" in text:
        return POSTGRESQL
    if "mariadb" in text or "mysql" in text:
        return MYSQL
    raise UnsupportedDialectError(
        f"unknown database type: {banner!r}",
        context={"banner": banner},
    )


def detect_dialect(db: Database) -> Dialect:
    """Query the database version banner once and select its dialect.

    Raises:
        DatabaseError: If the version query fails.
        UnsupportedDialectError: If the banner names no supported engine.
    """
    try:
        rows = db.query(VERSION_QUERY)
    except Exception as exc:
        raise DatabaseError(f"cannot query database version: {exc}", cause=exc) from exc

    # Last row wins, matching a plain scan over the result set.
    banner = ""
    for row in rows:
        banner = str(row[0]) if row and row[0] is not None else ""

    dialect = dialect_from_banner(banner)
    logger.debug("migration.dialect_detected", dialect=dialect.name, banner=banner)
    return dialect


__all__ = [
    "VERSION_QUERY",
    "HISTORY_TABLE",
    "HISTORY_COLUMNS",
    "Dialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    "POSTGRESQL",
    "MYSQL",
    "quote",
    "dialect_from_banner",
    "detect_dialect",
]
