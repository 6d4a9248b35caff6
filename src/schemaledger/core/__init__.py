"""schemaledger core -- forward-only SQL migrations with a checksummed history.

Manifesto:
    A service should be able to call one function at boot and know that
    its schema is exactly what its migration scripts describe: every
    script applied once, in version order, with edits to already-applied
    scripts and leftovers from crashed runs detected instead of ignored.

Architecture::

    Layer 1 -- Types & Errors
        errors.py          MigrationError hierarchy (config, drift, dirty, ...)
        models.py          Migration, HistoryEntry, Status
        protocols.py       Database / TransactionalDatabase capabilities

    Layer 2 -- Primitives
        statements.py      SQL script → statements (comment stripping)
        hashing.py         SHA-256 checksum of a migration's statements
        dialect.py         PostgreSQL / MySQL history SQL + detection

    Layer 3 -- Engine
        migrations/        history table store + apply engine

    Layer 4 -- Edges
        discovery.py       schemaledger.json + *.sql files → Migration list
        connection.py      DB-API adapter, SQLAlchemy URL connect()
        settings.py        LedgerSettings (pydantic-settings)
        logging.py         structlog configuration
"""

from schemaledger.core.dialect import (
    Dialect,
    MySQLDialect,
    PostgreSQLDialect,
    detect_dialect,
)
from schemaledger.core.errors import (
    ConfigError,
    DatabaseError,
    DirtyStateError,
    DriftError,
    ErrorCategory,
    ExecutionError,
    MigrationError,
    StatementSyntaxError,
    UnsupportedDialectError,
)
from schemaledger.core.hashing import compute_checksum
from schemaledger.core.migrations import (
    ApplyResult,
    MigrationEngine,
    MigrationPlan,
    apply,
    apply_in_transaction,
)
from schemaledger.core.models import HistoryEntry, Migration, ScriptType, Status
from schemaledger.core.protocols import Database, TransactionalDatabase
from schemaledger.core.statements import split_statements

__all__ = [
    # errors
    "ErrorCategory",
    "MigrationError",
    "ConfigError",
    "StatementSyntaxError",
    "DriftError",
    "DirtyStateError",
    "ExecutionError",
    "UnsupportedDialectError",
    "DatabaseError",
    # models
    "Migration",
    "HistoryEntry",
    "Status",
    "ScriptType",
    # protocols
    "Database",
    "TransactionalDatabase",
    # primitives
    "split_statements",
    "compute_checksum",
    "Dialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    "detect_dialect",
    # engine
    "MigrationEngine",
    "MigrationPlan",
    "ApplyResult",
    "apply",
    "apply_in_transaction",
]
