"""
Value types shared by the migration engine and the history store.

``Migration`` is what callers hand to ``apply``: one unit of change,
identified by ``(group, version)``. ``HistoryEntry`` is one row of the
persistent history table, created as ``executing`` right before a
migration runs and updated in place to ``success`` or ``failed``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from schemaledger.core.hashing import compute_checksum


# Versions are stored in a BIGINT column.
MAX_VERSION = 2**63 - 1


class Status(str, Enum):
    """Lifecycle state of a history row."""

    PENDING = "pending"
    EXECUTING = "executing"
    SUCCESS = "success"
    FAILED = "failed"


class ScriptType(str, Enum):
    """Kind of script a history row was produced from."""

    SQL = "sql"


@dataclass(frozen=True)
class Migration:
    """One versioned unit of schema change.

    Attributes:
        group: Independent migration namespace; versions are unique per group
        version: Non-negative ordering key within the group
        statements: Ordered SQL statements, executed one by one
        script_name: Source the statements came from (usually a file name)
    """

    group: str
    version: int
    statements: tuple[str, ...]
    script_name: str

    def __post_init__(self) -> None:
        # Accept any sequence, store an immutable one.
        object.__setattr__(self, "statements", tuple(self.statements))

    @property
    def identity(self) -> tuple[str, int]:
        return (self.group, self.version)

    @property
    def checksum(self) -> str:
        return compute_checksum(self.statements)

    def __str__(self) -> str:
        return f"{self.group}.{self.version} ({self.script_name})"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class HistoryEntry:
    """One row of the migration history table.

    ``execution_duration`` is stored as integer nanoseconds in the table.
    """

    group: str
    version: int
    script: str
    type: ScriptType = ScriptType.SQL
    checksum: str = ""
    applied_at: datetime = field(default_factory=_utcnow)
    execution_duration: timedelta = timedelta(0)
    status: Status = Status.PENDING
    log: str = ""

    @classmethod
    def for_migration(cls, migration: Migration) -> HistoryEntry:
        """Build the ``executing`` row written just before ``migration`` runs."""
        return cls(
            group=migration.group,
            version=migration.version,
            script=migration.script_name,
            type=ScriptType.SQL,
            checksum=migration.checksum,
            status=Status.EXECUTING,
        )

    @property
    def identity(self) -> tuple[str, int]:
        return (self.group, self.version)

    @property
    def is_success(self) -> bool:
        return self.status == Status.SUCCESS

    def __str__(self) -> str:
        return f"{self.group}.{self.version} ({self.script}, status={self.status.value})"


__all__ = ["MAX_VERSION", "Status", "ScriptType", "Migration", "HistoryEntry"]
