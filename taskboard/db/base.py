"""SQLAlchemy engine lifecycle.

The service targets PostgreSQL in production but supports SQLite for local
development and CI. No declarative models are defined here; this module only
manages connection lifecycle. Repositories issue text SQL against the shared
engine.
"""

from __future__ import annotations

import logging
import os

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from taskboard.config import get_config

logger = logging.getLogger(__name__)


def _db_url() -> str:
    return os.getenv("TEST_DATABASE_URL") or get_config().database.dsn


# Module-level cached Engine to ensure a single shared connection/engine
_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def get_engine(url: str | None = None) -> Engine:
    """Return a singleton SQLAlchemy Engine for the given URL.

    Reuses a module-level Engine so repositories share the same connection
    pool. For SQLite in-memory URLs, use a StaticPool to keep a single
    connection alive across sessions and threads during tests.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or _db_url()

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        kwargs: dict = {"future": True, "pool_pre_ping": True}
        if resolved_url.startswith("sqlite") and ":memory:" in resolved_url:
            # Keep a single in-memory DB connection shared across the process
            kwargs.update({
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            })
        elif resolved_url.startswith("sqlite"):
            kwargs.update({"connect_args": {"check_same_thread": False}})
        engine = create_engine(resolved_url, **kwargs)
        if resolved_url.startswith("sqlite"):
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        _ENGINE = engine
        _ENGINE_URL = resolved_url
        logger.info("db.engine.created dialect=%s", engine.dialect.name)

    return _ENGINE


def reset_engine() -> None:
    """Dispose the cached Engine so the next call rebuilds it."""
    global _ENGINE, _ENGINE_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _ENGINE_URL = None

