"""
Database capability protocols for schemaledger.

The migration engine never touches a concrete driver, connection or
transaction type. It depends only on the shape defined here, so the same
engine runs against a raw connection, a connection inside a caller-owned
transaction, or an in-memory test fake.

Manifesto:
    - **Narrow:** Two methods are all the engine needs (execute, query)
    - **Structural:** Any object with the right shape satisfies the protocol
    - **Transaction-agnostic:** Whether statements commit is the caller's call

Architecture:
    ::

        Database Protocol:
        ┌────────────────────────────────────────────────────────┐
        │ execute(sql, params) → run a statement, no result      │
        │ query(sql, params)   → run a statement, return rows    │
        └────────────────────────────────────────────────────────┘

        TransactionalDatabase Protocol (adds):
        ┌────────────────────────────────────────────────────────┐
        │ commit()             → commit current transaction      │
        │ rollback()           → rollback current transaction    │
        └────────────────────────────────────────────────────────┘

        Implementations:
        ┌────────────────────────────────────────────────────────┐
        │ DBAPIDatabase   → any PEP 249 connection               │
        │ test fakes      → in-memory history table              │
        └────────────────────────────────────────────────────────┘

Tags:
    protocol, database, capability, schemaledger

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Database(Protocol):
    """
    Minimal synchronous database capability used by the migration engine.

    ``params`` is a positional tuple. Placeholders inside ``sql`` use the
    style of the detected dialect (``$1`` for PostgreSQL, ``?`` for MySQL);
    when ``params`` is empty the statement is sent verbatim.
    """

    def execute(self, sql: str, params: tuple = ()) -> None:
        """Execute a statement that returns no rows."""
        ...

    def query(self, sql: str, params: tuple = ()) -> list[tuple[Any, ...]]:
        """Execute a statement and return all result rows."""
        ...


@runtime_checkable
class TransactionalDatabase(Database, Protocol):
    """A ``Database`` whose work can be committed or rolled back as a unit."""

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...


__all__ = ["Database", "TransactionalDatabase"]
