"""
schemaledger - forward-only versioned SQL migrations.

Applies ordered SQL migrations exactly once each and records every attempt,
with a checksum, in the ``migration_schema_history`` table.
"""

__version__ = "0.1.0"

from schemaledger.core import *  # noqa: F401,F403
from schemaledger.core import __all__ as _core_all

__all__ = ["__version__", *_core_all]
