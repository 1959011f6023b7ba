"""Subtask data access helpers. Subtasks are ordered within their task."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from taskboard.db.base import get_engine
from taskboard.logic.append_allocator import ContainerAppendAllocator
from taskboard.logic.errors import NotFound
from taskboard.logic.ordering_scopes import SUBTASKS, Container

logger = logging.getLogger(__name__)

_SUBTASK_COLUMNS = "id, task_id, name, status, rank_key, due_date, priority"

_UPDATABLE_COLUMNS = {"name": "name", "status": "status", "due_date": "due_date", "priority": "priority"}


def subtask_dict(row) -> dict:  # type: ignore[no-untyped-def]
    return {
        "id": str(row[0]),
        "task_id": str(row[1]),
        "name": str(row[2]),
        "status": bool(row[3]),
        "rank": str(row[4]),
        "due_date": row[5],
        "priority": row[6],
    }


def create_subtask(task_id: str, name: str) -> dict:
    """Append a subtask at the tail of its task's subtask order."""
    eng = get_engine()
    container = Container(outer_id=None, container_id=task_id)
    with eng.connect() as conn:
        if not SUBTASKS.container_exists(conn, container):
            raise NotFound(f"Task {task_id} not found")

    subtask_id = str(uuid.uuid4())
    clean_name = str(name).strip()
    created_at = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

    def _insert(conn: Connection, rank: str) -> dict:
        conn.execute(
            sql_text(
                """
                INSERT INTO subtask (id, task_id, name, status, rank_key, created_at)
                VALUES (:id, :tid, :name, FALSE, :rank, :created_at)
                """
            ),
            {"id": subtask_id, "tid": task_id, "name": clean_name, "rank": rank, "created_at": created_at},
        )
        return {
            "id": subtask_id,
            "task_id": task_id,
            "name": clean_name,
            "status": False,
            "rank": rank,
            "due_date": None,
            "priority": None,
        }

    allocator = ContainerAppendAllocator(SUBTASKS, engine=eng)
    return allocator.append(container, _insert)


def get_subtask(subtask_id: str) -> dict:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(f"SELECT {_SUBTASK_COLUMNS} FROM subtask WHERE id = :sid"),
            {"sid": subtask_id},
        ).first()
    if row is None:
        raise NotFound(f"Subtask {subtask_id} not found")
    return subtask_dict(row)


def list_project_subtasks(conn: Connection, project_id: str) -> list[dict]:
    """Return all subtasks of a project's tasks in ascending rank order."""
    rows = conn.execute(
        sql_text(
            """
            SELECT s.id, s.task_id, s.name, s.status, s.rank_key, s.due_date, s.priority
            FROM subtask s
            JOIN task t ON t.id = s.task_id
            WHERE t.project_id = :pid
            ORDER BY s.rank_key ASC, s.id ASC
            """
        ),
        {"pid": project_id},
    ).fetchall()
    return [subtask_dict(r) for r in rows]



def update_subtask(subtask_id: str, patch: dict) -> dict:
    """Update the fields present in ``patch``; an empty patch returns the row unchanged."""
    current = get_subtask(subtask_id)
    fields = {k: v for k, v in patch.items() if k in _UPDATABLE_COLUMNS}
    if not fields:
        return current
    assignments = ", ".join(f"{_UPDATABLE_COLUMNS[k]} = :{k}" for k in sorted(fields))
    eng = get_engine()
    try:
        with eng.begin() as conn:
            conn.execute(
                sql_text(f"UPDATE subtask SET {assignments} WHERE id = :sid"),
                {**fields, "sid": subtask_id},
            )
    except Exception:
        logger.error("update_subtask failed sid=%s fields=%s", subtask_id, sorted(fields), exc_info=True)
        raise
    logger.info("subtask.updated id=%s fields=%s", subtask_id, sorted(fields))
    return get_subtask(subtask_id)


def delete_subtask(subtask_id: str) -> dict:
    """Delete a subtask; its siblings keep their ranks. Returns the deleted row."""
    current = get_subtask(subtask_id)
    eng = get_engine()
    with eng.begin() as conn:
        result = conn.execute(sql_text("DELETE FROM subtask WHERE id = :sid"), {"sid": subtask_id})
    if not result.rowcount:
        raise NotFound(f"Subtask {subtask_id} not found")
    logger.info("subtask.deleted id=%s task_id=%s", subtask_id, current["task_id"])
    return current


__all__ = [
    "subtask_dict",
    "create_subtask",
    "get_subtask",
    "list_project_subtasks",
    "update_subtask",
    "delete_subtask",
]
