"""Migration apply engine.

Applies versioned SQL migrations exactly once each, recording every attempt
in the history table. One ``apply`` call runs these steps in order, each a
precondition for the next:

1. acquire the engine lock (released on every exit path)
2. detect the dialect from the database version banner
3. ensure the history table exists and load it
4. refuse to run if any history row is not ``success`` (dirty state)
5. split supplied migrations into already-applied (checksum must match)
   and pending candidates per group
6. sort candidates per group and reject duplicate versions
7. run each pending migration: insert ``executing`` row, execute its
   statements, update the row to ``success`` or ``failed``

The batch is not wrapped in a transaction here. Each statement runs in
whatever transactional context ``db`` represents; ``apply_in_transaction``
wraps the whole call in one transaction for callers that want all or
nothing.

The lock is process-local. Two processes applying migrations against the
same database at the same time is unsupported; run migrations from exactly
one instance.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import timedelta

from schemaledger.core.dialect import Dialect, detect_dialect
from schemaledger.core.errors import (
    ConfigError,
    DatabaseError,
    DirtyStateError,
    DriftError,
    ExecutionError,
    MigrationError,
)
from schemaledger.core.logging import LogContext, get_logger
from schemaledger.core.migrations.history import (
    ensure_table,
    insert_entry,
    load_history,
    update_entry,
)
from schemaledger.core.models import MAX_VERSION, HistoryEntry, Migration, Status
from schemaledger.core.protocols import Database, TransactionalDatabase

logger = get_logger(__name__)


@dataclass
class MigrationPlan:
    """Supplied migrations split into already-applied and pending ones."""

    dialect: Dialect
    skipped: list[Migration] = field(default_factory=list)
    pending: dict[str, list[Migration]] = field(default_factory=dict)

    def ordered(self) -> Iterator[Migration]:
        """Pending migrations, groups by name, ascending version within a group."""
        for group in sorted(self.pending):
            yield from self.pending[group]

    @property
    def pending_count(self) -> int:
        return sum(len(c) for c in self.pending.values())


@dataclass
class ApplyResult:
    """Outcome of a successful ``apply`` call."""

    applied: list[HistoryEntry] = field(default_factory=list)
    skipped: list[Migration] = field(default_factory=list)


class MigrationEngine:
    """Applies migrations against a ``Database``.

    Parameters
    ----------
    lock
        Lock held for the duration of each ``apply``/``plan`` call.
        Defaults to a new ``threading.Lock`` owned by this engine. Share one
        engine (or one lock) to serialize callers within a process.

    Example::

        engine = MigrationEngine()
        result = engine.apply(db, migrations)
        print(f"Applied {len(result.applied)} migrations")
    """

    def __init__(self, lock: threading.Lock | None = None) -> None:
        self._lock = lock or threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def apply(self, db: Database, migrations: Iterable[Migration]) -> ApplyResult:
        """Apply all pending migrations.

        Raises:
            UnsupportedDialectError: Database engine not recognized.
            DatabaseError: History table access failed.
            DirtyStateError: A prior run left a non-success history row.
            DriftError: An applied migration was modified.
            ConfigError: Duplicate, negative or out-of-range versions within a group.
            ExecutionError: A statement failed; its row is marked failed.
        """
        with self._lock:
            plan = self._plan(db, migrations)
            result = ApplyResult(skipped=list(plan.skipped))

            for migration in plan.ordered():
                result.applied.append(self._run(plan.dialect, db, migration))

            if result.applied:
                logger.info(
                    "migrations.complete",
                    applied=len(result.applied),
                    skipped=len(result.skipped),
                )
            else:
                logger.info("migrations.up_to_date", skipped=len(result.skipped))
            return result

    def plan(self, db: Database, migrations: Iterable[Migration]) -> MigrationPlan:
        """Compute pending migrations without executing any of them.

        Runs the same checks as ``apply`` (dialect, dirty state, drift,
        version ordering). The history table is created if missing.
        """
        with self._lock:
            return self._plan(db, migrations)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _plan(self, db: Database, migrations: Iterable[Migration]) -> MigrationPlan:
        dialect = detect_dialect(db)
        ensure_table(db)
        entries = load_history(db)

        for entry in entries:
            if entry.status != Status.SUCCESS:
                raise DirtyStateError(
                    f"migrations are dirty. Needs manual fix: {entry}",
                    context={"group": entry.group, "version": entry.version,
                             "status": entry.status.value, "log": entry.log},
                )

        applied = {entry.identity: entry for entry in entries}
        plan = MigrationPlan(dialect=dialect)

        for migration in migrations:
            entry = applied.get(migration.identity)
            if entry is None:
                plan.pending.setdefault(migration.group, []).append(migration)
                continue
            if migration.checksum != entry.checksum:
                raise DriftError(
                    f"an already applied migration has been modified. "
                    f"Needs manual fix: {entry} vs {migration}",
                    context={"group": migration.group, "version": migration.version,
                             "recorded": entry.checksum, "computed": migration.checksum},
                )
            logger.debug("migration.skipped", group=migration.group, version=migration.version)
            plan.skipped.append(migration)

        for group, candidates in plan.pending.items():
            candidates.sort(key=lambda m: m.version)
            previous = -1
            for migration in candidates:
                if migration.version > MAX_VERSION:
                    raise ConfigError(
                        f"the version must fit in 64 bits: {migration}",
                        context={"group": group, "version": migration.version},
                    )
                if migration.version <= previous:
                    raise ConfigError(
                        f"the version must be >=0 and unique: {migration}",
                        context={"group": group, "version": migration.version},
                    )
                previous = migration.version

        return plan

    def _run(self, dialect: Dialect, db: Database, migration: Migration) -> HistoryEntry:
        entry = HistoryEntry.for_migration(migration)

        with LogContext(group=migration.group, version=migration.version):
            logger.info("migration.applying", script=migration.script_name,
                        statements=len(migration.statements))
            start = time.perf_counter()
            insert_entry(dialect, db, entry)

            try:
                _execute(db, migration)
            except ExecutionError as exc:
                entry.status = Status.FAILED
                entry.log = exc.context.get("detail", exc.message)
                logger.error("migration.failed", script=migration.script_name, error=entry.log)
                try:
                    update_entry(dialect, db, entry)
                except DatabaseError as update_exc:
                    logger.warning("migration.history_update_failed", error=str(update_exc))
                raise

            entry.status = Status.SUCCESS
            entry.execution_duration = timedelta(seconds=time.perf_counter() - start)
            update_entry(dialect, db, entry)
            logger.info("migration.applied", script=migration.script_name,
                        duration_ms=entry.execution_duration // timedelta(milliseconds=1))
        return entry


def _execute(db: Database, migration: Migration) -> None:
    for stmt in migration.statements:
        try:
            db.execute(stmt)
        except Exception as exc:
            detail = f"failed to execute statement '{stmt}': {exc}"
            raise ExecutionError(
                f"failed to execute migration {migration.group}.{migration.version}: {detail}",
                context={"group": migration.group, "version": migration.version,
                         "script": migration.script_name, "detail": detail},
                cause=exc,
            ) from exc


# Shared engine behind the module-level entry points.
_default_engine = MigrationEngine()


def apply(db: Database, migrations: Iterable[Migration]) -> ApplyResult:
    """Apply ``migrations`` with the process-wide default engine."""
    return _default_engine.apply(db, migrations)


def apply_in_transaction(
    db: TransactionalDatabase,
    migrations: Iterable[Migration],
    *,
    engine: MigrationEngine | None = None,
) -> ApplyResult:
    """Apply migrations, committing on success and rolling back on any error.

    The original error is re-raised after the rollback; a failing rollback
    is logged and does not mask it. Deciding whether a failure is fatal is
    left to the caller.
    """
    engine = engine or _default_engine
    try:
        result = engine.apply(db, migrations)
    except MigrationError as exc:
        logger.error("migrations.rolling_back", **exc.to_dict())
        _rollback(db)
        raise
    except Exception:
        _rollback(db)
        raise

    try:
        db.commit()
    except Exception as exc:
        raise DatabaseError(f"cannot commit migrations: {exc}", cause=exc) from exc
    return result


def _rollback(db: TransactionalDatabase) -> None:
    try:
        db.rollback()
    except Exception as exc:
        logger.error("migrations.rollback_failed", error=str(exc))


__all__ = [
    "MigrationPlan",
    "ApplyResult",
    "MigrationEngine",
    "apply",
    "apply_in_transaction",
]
