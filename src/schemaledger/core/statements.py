"""
Split raw SQL script text into individual statements.

A migration file is a plain SQL script. Before it can be executed through
a DB-API connection (one statement per call) it is broken up on ``;``:

- line (``-- ...``) and block (``/* ... */``) comments are removed first
- newlines, tabs and carriage returns become spaces, runs of spaces collapse
- empty statements (``;;``, trailing ``;``) are dropped
- text after the last ``;`` is an error, never silently discarded

Semicolons inside string literals are not recognized; a script that needs
one must be split differently.

Examples:
    >>> split_statements("INSERT INTO t VALUES (1); -- one\\nINSERT INTO t VALUES (2);")
    ['INSERT INTO t VALUES (1)', 'INSERT INTO t VALUES (2)']
    >>> split_statements(";;")
    []
"""

from __future__ import annotations

import re

from schemaledger.core.errors import StatementSyntaxError

COMMENTS_RE = re.compile(r"--[^\n]*|/\*.*?\*/", re.DOTALL)

_FOLDED = frozenset("\r\n\t")


def strip_comments(text: str) -> str:
    """Replace every SQL comment with a single space."""
    return COMMENTS_RE.sub(" ", text)


def split_statements(text: str) -> list[str]:
    """Split SQL script text into trimmed, non-empty statements.

    Raises:
        StatementSyntaxError: If non-whitespace text follows the last ``;``.
    """
    statements: list[str] = []
    buf: list[str] = []
    last = ""

    for ch in strip_comments(text):
        if ch == ";":
            stmt = "".join(buf).strip()
            if stmt:
                statements.append(stmt)
            buf.clear()
            continue

        if ch in _FOLDED:
            ch = " "
        if ch == " " and last == " ":
            continue
        last = ch
        buf.append(ch)

    rest = "".join(buf).strip()
    if rest:
        raise StatementSyntaxError(
            "non terminated sql statement",
            context={"trailing": rest[:80]},
        )
    return statements


__all__ = ["COMMENTS_RE", "strip_comments", "split_statements"]
