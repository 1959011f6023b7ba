"""Database bootstrap utilities for the taskboard service.

Exposes the shared engine accessor and the SQL migrations runner that applies
files from the local migrations/ directory. The DB layer does not leak ORM
models into route handlers; repositories issue text SQL.
"""

from taskboard.db.base import get_engine, reset_engine
from taskboard.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "reset_engine",
    "apply_migrations",
]
