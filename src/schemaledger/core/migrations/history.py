"""Persistent migration history table.

One row per applied-or-attempted migration, keyed by ``(group, version)``.
Rows are inserted as ``executing`` and updated in place; this module never
deletes. Statements go through the ``Database`` capability only, with no
locking beyond what the caller's connection or transaction provides.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from schemaledger.core.dialect import HISTORY_COLUMNS, HISTORY_TABLE, Dialect, quote
from schemaledger.core.errors import DatabaseError, DirtyStateError
from schemaledger.core.logging import get_logger
from schemaledger.core.models import HistoryEntry, ScriptType, Status
from schemaledger.core.protocols import Database

logger = get_logger(__name__)

CREATE_HISTORY_TABLE = f"""CREATE TABLE IF NOT EXISTS {quote(HISTORY_TABLE)}
(
    "group"              VARCHAR(255) NOT NULL,
    "version"            BIGINT       NOT NULL,
    "script"             VARCHAR(255) NOT NULL,
    "type"               VARCHAR(12)  NOT NULL,
    "checksum"           CHAR(64)     NOT NULL,
    "applied_at"         TIMESTAMP    NOT NULL,
    "execution_duration" BIGINT       NOT NULL,
    "status"             VARCHAR(12)  NOT NULL,
    "log"                TEXT         NOT NULL,
    PRIMARY KEY ("group", "version")
)"""

SELECT_HISTORY = (
    f"SELECT {', '.join(quote(c) for c in HISTORY_COLUMNS)} FROM {quote(HISTORY_TABLE)}"
)

_NANOS_PER_MICRO = 1_000

_KNOWN_STATUSES = frozenset(s.value for s in Status)


def duration_to_nanos(duration: timedelta) -> int:
    return (duration // timedelta(microseconds=1)) * _NANOS_PER_MICRO


def nanos_to_duration(nanos: int) -> timedelta:
    return timedelta(microseconds=int(nanos) // _NANOS_PER_MICRO)


def ensure_table(db: Database) -> None:
    """Create the history table if it does not exist (idempotent)."""
    try:
        db.execute(CREATE_HISTORY_TABLE)
    except Exception as exc:
        raise DatabaseError(f"cannot create migration table: {exc}", cause=exc) from exc


def load_history(db: Database) -> list[HistoryEntry]:
    """Return every history row, in no particular order.

    Raises:
        DatabaseError: If the table cannot be read or a row is malformed.
        DirtyStateError: If a row carries a status outside ``Status``.
    """
    try:
        rows = db.query(SELECT_HISTORY)
    except Exception as exc:
        raise DatabaseError(f"cannot select history: {exc}", cause=exc) from exc
    return [_row_to_entry(row) for row in rows]


def insert_entry(dialect: Dialect, db: Database, entry: HistoryEntry) -> None:
    """Insert a new history row using the dialect's placeholder style."""
    params = (
        entry.group,
        entry.version,
        entry.script,
        entry.type.value,
        entry.checksum,
        entry.applied_at,
        duration_to_nanos(entry.execution_duration),
        entry.status.value,
        entry.log,
    )
    try:
        db.execute(dialect.insert_history_sql(), params)
    except Exception as exc:
        raise DatabaseError(
            f"failed to insert history entry {entry}: {exc}",
            context={"group": entry.group, "version": entry.version},
            cause=exc,
        ) from exc


def update_entry(dialect: Dialect, db: Database, entry: HistoryEntry) -> None:
    """Update the non-key columns of the row identified by (group, version)."""
    params = (
        entry.script,
        entry.type.value,
        entry.checksum,
        entry.applied_at,
        duration_to_nanos(entry.execution_duration),
        entry.status.value,
        entry.log,
        entry.group,
        entry.version,
    )
    try:
        db.execute(dialect.update_history_sql(), params)
    except Exception as exc:
        raise DatabaseError(
            f"failed to update history entry {entry}: {exc}",
            context={"group": entry.group, "version": entry.version},
            cause=exc,
        ) from exc


def _row_to_entry(row: Any) -> HistoryEntry:
    try:
        group, version, script, type_, checksum, applied_at, duration, status, log = row
        if isinstance(applied_at, str):
            applied_at = datetime.fromisoformat(applied_at)
        if status not in _KNOWN_STATUSES:
            # A hand-edited status is as dirty as a failed one.
            raise DirtyStateError(
                f"migrations are dirty. Needs manual fix: {group}.{version} "
                f"({script}, status={status!r})",
                context={"group": group, "version": version, "status": status, "log": log},
            )
        return HistoryEntry(
            group=group,
            version=int(version),
            script=script,
            type=ScriptType(type_),
            checksum=(checksum or "").strip(),
            applied_at=applied_at,
            execution_duration=nanos_to_duration(duration or 0),
            status=Status(status),
            log=log or "",
        )
    except (TypeError, ValueError) as exc:
        raise DatabaseError(f"cannot scan history entry {row!r}: {exc}", cause=exc) from exc


__all__ = [
    "HISTORY_TABLE",
    "CREATE_HISTORY_TABLE",
    "SELECT_HISTORY",
    "duration_to_nanos",
    "nanos_to_duration",
    "ensure_table",
    "load_history",
    "insert_entry",
    "update_entry",
]
