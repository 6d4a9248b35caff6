"""
Structured error types for schemaledger.

Every failure the migration engine can report is a ``MigrationError``
subclass. Errors carry a category for routing, a context dict with the
migration identity involved, and the chained driver exception (if any) so
callers can log one structured record per failure.

Manifesto:
    - **Typed hierarchy:** One class per failure phase of ``apply``
    - **Fail closed:** None of these errors is retryable; a human decides
    - **Rich context:** group, version, script travel with the error
    - **Error chaining:** Driver exceptions are preserved as ``cause``

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                      MigrationError                        │
        │              (category, context, cause)                    │
        ├───────────────────────────────────────────────────────────┤
        │  ConfigError          DriftError         DirtyStateError   │
        │  (CONFIG)             (DRIFT)            (DIRTY)           │
        │      │                                                     │
        │  StatementSyntaxError                                      │
        │  (PARSE)                                                   │
        │                                                            │
        │  ExecutionError       UnsupportedDialectError              │
        │  (EXECUTION)          (DIALECT)                            │
        │                                                            │
        │  DatabaseError                                             │
        │  (DATABASE)                                                │
        └───────────────────────────────────────────────────────────┘

Examples:
    >>> err = DriftError("checksum mismatch").with_context(group="core", version=3)
    >>> err.to_dict()["context"]
    {'group': 'core', 'version': 3}

Tags:
    error-handling, exception-hierarchy, migrations, schemaledger

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Error categories, one per phase of the apply algorithm.

    Attributes:
        CONFIG: Invalid migration set (duplicate versions, bad file names)
        PARSE: SQL text could not be split into statements
        DRIFT: An applied migration was modified afterwards
        DIRTY: A previous run left a non-success history row
        EXECUTION: A migration statement failed against the database
        DIALECT: The database engine is not supported
        DATABASE: History table or connection failure
    """

    CONFIG = "CONFIG"
    PARSE = "PARSE"
    DRIFT = "DRIFT"
    DIRTY = "DIRTY"
    EXECUTION = "EXECUTION"
    DIALECT = "DIALECT"
    DATABASE = "DATABASE"


class MigrationError(Exception):
    """
    Base exception for all schemaledger errors.

    Subclasses set ``default_category``. The ``context`` dict holds small,
    loggable values (group, version, script, statement); ``cause`` holds the
    underlying exception and is also chained as ``__cause__``.

    Examples:
        >>> try:
        ...     raise RuntimeError("relation does not exist")
        ... except RuntimeError as e:
        ...     err = ExecutionError("migration core.2 failed", cause=e)
        >>> err.category
        <ErrorCategory.EXECUTION: 'EXECUTION'>
        >>> err.cause
        RuntimeError('relation does not exist')
    """

    default_category: ErrorCategory = ErrorCategory.CONFIG

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> MigrationError:
        """
        Add context to this error (fluent API).

        Usage:
            raise DriftError("modified").with_context(group="core", version=1)
        """
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS (detected before any database mutation)
# =============================================================================


class ConfigError(MigrationError):
    """
    Invalid migration set.

    Duplicate or non-monotonic versions within a group, file names without
    a version, migration files without statements, malformed group files.
    """

    default_category = ErrorCategory.CONFIG


class StatementSyntaxError(ConfigError):
    """SQL script text ends in the middle of a statement."""

    default_category = ErrorCategory.PARSE


# =============================================================================
# HISTORY STATE ERRORS (require manual investigation)
# =============================================================================


class DriftError(MigrationError):
    """An already applied migration no longer matches its recorded checksum."""

    default_category = ErrorCategory.DRIFT


class DirtyStateError(MigrationError):
    """
    The history table holds a row whose status is not ``success``.

    Blocks every further migration, in every group, until the row and the
    database state it describes are fixed by hand.
    """

    default_category = ErrorCategory.DIRTY


# =============================================================================
# RUNTIME ERRORS
# =============================================================================


class ExecutionError(MigrationError):
    """A statement of a pending migration failed."""

    default_category = ErrorCategory.EXECUTION


class UnsupportedDialectError(MigrationError):
    """The database version banner matches no supported dialect."""

    default_category = ErrorCategory.DIALECT


class DatabaseError(MigrationError):
    """History table access, version query or connection failed."""

    default_category = ErrorCategory.DATABASE


__all__ = [
    "ErrorCategory",
    "MigrationError",
    "ConfigError",
    "StatementSyntaxError",
    "DriftError",
    "DirtyStateError",
    "ExecutionError",
    "UnsupportedDialectError",
    "DatabaseError",
]
