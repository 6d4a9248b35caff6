"""
Deterministic content checksum of a migration.

The checksum is the only tamper-detection mechanism: it is recorded when a
migration is applied and recomputed on every later run. If a script is
edited after it has been applied, the two values differ ("drift").

The format is fixed for compatibility with existing history tables:
SHA-256 over the UTF-8 bytes of all statements joined with ``;`` (no
trailing separator, no escaping), lowercase hex, 64 characters.

Examples:
    >>> compute_checksum(["CREATE TABLE t (id INT)"]) == compute_checksum(["CREATE TABLE t (id INT)"])
    True
    >>> len(compute_checksum([]))
    64
"""

import hashlib
from collections.abc import Iterable

SEPARATOR = ";"


def compute_checksum(statements: Iterable[str]) -> str:
    """
    Compute the hex SHA-256 checksum of an ordered statement sequence.

    Any change to statement text, order or count changes the result.

    Args:
        statements: Statements as produced by ``split_statements``

    Returns:
        64-char lowercase hex string
    """
    content = SEPARATOR.join(statements)
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


__all__ = ["SEPARATOR", "compute_checksum"]
