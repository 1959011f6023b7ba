"""Functional test bootstrap for the ordering engine and board API.

Uses a file-backed SQLite database so separate pooled connections see each
other's commits (the collision tests rely on a second writer). Migrations are
applied once per session; every test starts from empty tables.
"""

from __future__ import annotations

import os
import pathlib
import uuid
from datetime import datetime, timezone
from typing import Iterator, Optional

import pytest

# Point the app at the test database before any taskboard module reads config
_ROOT = pathlib.Path(__file__).resolve().parents[2]
_TMP = _ROOT / "tmp"
_DB_FILE = _TMP / "functional_tests.db"
_JOURNAL = _TMP / "functional_journal.json"
_TMP.mkdir(parents=True, exist_ok=True)
for _stale in (_DB_FILE, _JOURNAL):
    if _stale.exists():
        _stale.unlink()

os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
# Migrations are applied explicitly below
os.environ["AUTO_APPLY_MIGRATIONS"] = "0"
os.environ["ENABLE_TEST_ROUTES"] = "1"

from sqlalchemy import text as sql_text  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402

from taskboard.config import get_config  # noqa: E402
from taskboard.db.base import get_engine, reset_engine  # noqa: E402
from taskboard.db.migrations_runner import apply_migrations  # noqa: E402
from taskboard.logic import events  # noqa: E402
from taskboard.logic.rank_codec import encode  # noqa: E402


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


class BoardSeed:
    """Direct SQL seeding with explicit integer ranks."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def project(self, name: str = "Board") -> str:
        pid = str(uuid.uuid4())
        with self.engine.begin() as conn:
            conn.execute(
                sql_text(
                    "INSERT INTO project (id, name, description, color, created_at) "
                    "VALUES (:id, :name, NULL, '#336699', :ts)"
                ),
                {"id": pid, "name": name, "ts": _now()},
            )
        return pid

    def section(self, project_id: str, rank: int, name: str = "Section") -> str:
        sid = str(uuid.uuid4())
        with self.engine.begin() as conn:
            conn.execute(
                sql_text(
                    "INSERT INTO section (id, project_id, name, rank_key, created_at) "
                    "VALUES (:id, :pid, :name, :rank, :ts)"
                ),
                {"id": sid, "pid": project_id, "name": name, "rank": encode(rank), "ts": _now()},
            )
        return sid

    def task(self, project_id: str, rank: int, section_id: Optional[str] = None, name: str = "Task") -> str:
        tid = str(uuid.uuid4())
        with self.engine.begin() as conn:
            conn.execute(
                sql_text(
                    "INSERT INTO task (id, project_id, section_id, name, rank_key, created_at) "
                    "VALUES (:id, :pid, :sid, :name, :rank, :ts)"
                ),
                {"id": tid, "pid": project_id, "sid": section_id, "name": name, "rank": encode(rank), "ts": _now()},
            )
        return tid

    def subtask(self, task_id: str, rank: int, name: str = "Subtask") -> str:
        stid = str(uuid.uuid4())
        with self.engine.begin() as conn:
            conn.execute(
                sql_text(
                    "INSERT INTO subtask (id, task_id, name, rank_key, created_at) "
                    "VALUES (:id, :tid, :name, :rank, :ts)"
                ),
                {"id": stid, "tid": task_id, "name": name, "rank": encode(rank), "ts": _now()},
            )
        return stid

    def position(self, table: str, item_id: str, container_column: str) -> tuple[Optional[str], str]:
        """Return (container id, rank key) as currently stored."""
        with self.engine.connect() as conn:
            row = conn.execute(
                sql_text(f"SELECT {container_column}, rank_key FROM {table} WHERE id = :id"),
                {"id": item_id},
            ).one()
        return (str(row[0]) if row[0] is not None else None, str(row[1]))


@pytest.fixture(scope="session", autouse=True)
def functional_sqlite_bootstrap() -> Iterator[None]:
    """Session-level bootstrap: fresh engine and schema for the shared DB."""
    get_config.cache_clear()
    reset_engine()
    apply_migrations(get_engine(os.environ["TEST_DATABASE_URL"]), journal_path=_JOURNAL)
    yield
    reset_engine()


@pytest.fixture(autouse=True)
def clean_board() -> Iterator[None]:
    with get_engine().begin() as conn:
        for table in ("subtask", "task", "section", "project"):
            conn.execute(sql_text(f"DELETE FROM {table}"))
    events.EVENT_BUFFER.clear()
    yield
    events.EVENT_BUFFER.clear()


@pytest.fixture
def engine() -> Engine:
    return get_engine()


@pytest.fixture
def seed(engine: Engine) -> BoardSeed:
    return BoardSeed(engine)


@pytest.fixture
def client():  # type: ignore[no-untyped-def]
    from fastapi.testclient import TestClient

    from taskboard.main import create_app

    with TestClient(create_app()) as c:
        yield c
