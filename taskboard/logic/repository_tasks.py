"""Task data access helpers.

Tasks live in a section of their project or, with ``section_id`` NULL, in the
project's unlocated bucket. New tasks are appended at the tail of their
container.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from taskboard.db.base import get_engine
from taskboard.logic.append_allocator import ContainerAppendAllocator
from taskboard.logic.errors import InvalidPayload, NotFound
from taskboard.logic.ordering_scopes import TASKS, Container
from taskboard.logic.repository_projects import ensure_project_exists

logger = logging.getLogger(__name__)

_TASK_COLUMNS = "id, project_id, section_id, name, description, status, rank_key, created_at, due_date"

# Patch keys accepted by update_task and the columns they write
_UPDATABLE_COLUMNS = {"name": "name", "desc": "description", "status": "status", "due_date": "due_date"}


def task_dict(row) -> dict:  # type: ignore[no-untyped-def]
    return {
        "id": str(row[0]),
        "project_id": str(row[1]),
        "section_id": str(row[2]) if row[2] is not None else None,
        "name": str(row[3]),
        "desc": row[4],
        "status": bool(row[5]),
        "rank": str(row[6]),
        "created_at": str(row[7]),
        "due_date": row[8],
    }


def create_task(
    project_id: str,
    name: str,
    *,
    section_id: Optional[str] = None,
    desc: Optional[str] = None,
) -> dict:
    """Append a task to a section (validated) or to the unlocated bucket."""
    eng = get_engine()
    with eng.connect() as conn:
        ensure_project_exists(conn, project_id)
        container = Container(outer_id=project_id, container_id=section_id)
        if section_id is not None and not TASKS.container_exists(conn, container):
            raise NotFound(f"Section {section_id} not found in project {project_id}")

    task_id = str(uuid.uuid4())
    clean_name = str(name).strip()
    created_at = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

    def _insert(conn: Connection, rank: str) -> dict:
        conn.execute(
            sql_text(
                """
                INSERT INTO task (id, project_id, section_id, name, description, status, rank_key, created_at)
                VALUES (:id, :pid, :sid, :name, :desc, FALSE, :rank, :created_at)
                """
            ),
            {
                "id": task_id,
                "pid": project_id,
                "sid": section_id,
                "name": clean_name,
                "desc": desc,
                "rank": rank,
                "created_at": created_at,
            },
        )
        return {
            "id": task_id,
            "project_id": project_id,
            "section_id": section_id,
            "name": clean_name,
            "desc": desc,
            "status": False,
            "rank": rank,
            "created_at": created_at,
            "due_date": None,
        }

    allocator = ContainerAppendAllocator(TASKS, engine=eng)
    return allocator.append(container, _insert)


def get_task(task_id: str, project_id: Optional[str] = None) -> dict:
    """Return a task by id, optionally restricted to a project; NotFound otherwise."""
    sql = f"SELECT {_TASK_COLUMNS} FROM task WHERE id = :tid"
    params = {"tid": task_id}
    if project_id is not None:
        sql += " AND project_id = :pid"
        params["pid"] = project_id
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(sql_text(sql), params).first()
    if row is None:
        where = f" in project {project_id}" if project_id else ""
        raise NotFound(f"Task {task_id} not found{where}")
    return task_dict(row)


def list_project_tasks(conn: Connection, project_id: str) -> list[dict]:
    """Return every task of the project in ascending rank order."""
    rows = conn.execute(
        sql_text(
            f"SELECT {_TASK_COLUMNS} FROM task WHERE project_id = :pid ORDER BY rank_key ASC, id ASC"
        ),
        {"pid": project_id},
    ).fetchall()
    return [task_dict(r) for r in rows]



def update_task(task_id: str, patch: dict) -> dict:
    """Apply a partial update to a task and return the updated row.

    Only keys present in ``patch`` change (name, desc, status, due_date); a
    None value clears desc or due_date. Raises NotFound for an unknown task
    and InvalidPayload when nothing updatable was sent. Rank and section are
    never touched here.
    """
    get_task(task_id)
    fields = {k: v for k, v in patch.items() if k in _UPDATABLE_COLUMNS}
    if not fields:
        raise InvalidPayload("No valid fields to update")
    assignments = ", ".join(f"{_UPDATABLE_COLUMNS[k]} = :{k}" for k in sorted(fields))
    eng = get_engine()
    try:
        with eng.begin() as conn:
            conn.execute(
                sql_text(f"UPDATE task SET {assignments} WHERE id = :tid"),
                {**fields, "tid": task_id},
            )
    except Exception:
        logger.error("update_task failed tid=%s fields=%s", task_id, sorted(fields), exc_info=True)
        raise
    logger.info("task.updated id=%s fields=%s", task_id, sorted(fields))
    return get_task(task_id)


__all__ = ["task_dict", "create_task", "get_task", "list_project_tasks", "update_task"]
