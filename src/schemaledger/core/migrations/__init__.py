"""Versioned SQL migration engine for schemaledger.

Manifesto:
    Schemas evolve forward only. Every migration is applied exactly once,
    recorded with its checksum, and never re-executed. A failed or
    half-applied migration stops everything until a human looks at it.

Modules
-------
runner     MigrationEngine with apply() / plan(), apply_in_transaction()
history    history table DDL and row access

Tags:
    schemaledger, migrations, schema, database, idempotent, DDL

Doc-Types:
    package-overview
"""

from schemaledger.core.migrations.history import (
    HISTORY_TABLE,
    ensure_table,
    insert_entry,
    load_history,
    update_entry,
)
from schemaledger.core.migrations.runner import (
    ApplyResult,
    MigrationEngine,
    MigrationPlan,
    apply,
    apply_in_transaction,
)

__all__ = [
    "HISTORY_TABLE",
    "ensure_table",
    "load_history",
    "insert_entry",
    "update_entry",
    "ApplyResult",
    "MigrationEngine",
    "MigrationPlan",
    "apply",
    "apply_in_transaction",
]
