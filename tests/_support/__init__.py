"""
Test support utilities for schemaledger tests.

Helpers that don't fit as pytest fixtures but are shared across test files.
"""

from __future__ import annotations

from tests._support.fakes import MARIADB_BANNER, PG_BANNER, FakeDatabase, make_migration

__all__ = ["FakeDatabase", "PG_BANNER", "MARIADB_BANNER", "make_migration"]
