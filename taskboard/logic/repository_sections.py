"""Section data access helpers.

Sections are ordered within their project. New sections are appended at the
tail of the project's order through the append allocator; moves go through
the shared move coordinator (see routes/sections.py). Deleting a section
hands its tasks to the unlocated bucket instead of cascading.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from taskboard.db.base import get_engine
from taskboard.logic.append_allocator import ContainerAppendAllocator
from taskboard.logic.errors import NotFound
from taskboard.logic.ordering_scopes import SECTIONS, TASKS, Container
from taskboard.logic.repository_projects import ensure_project_exists

logger = logging.getLogger(__name__)


def _section_dict(row) -> dict:  # type: ignore[no-untyped-def]
    return {
        "id": str(row[0]),
        "project_id": str(row[1]),
        "name": str(row[2]),
        "rank": str(row[3]),
    }


def create_section(project_id: str, name: str) -> dict:
    """Append a new section at the tail of the project's section order."""
    eng = get_engine()
    with eng.connect() as conn:
        ensure_project_exists(conn, project_id)

    section_id = str(uuid.uuid4())
    clean_name = str(name).strip()
    created_at = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

    def _insert(conn: Connection, rank: str) -> dict:
        conn.execute(
            sql_text(
                """
                INSERT INTO section (id, project_id, name, rank_key, created_at)
                VALUES (:id, :pid, :name, :rank, :created_at)
                """
            ),
            {"id": section_id, "pid": project_id, "name": clean_name, "rank": rank, "created_at": created_at},
        )
        return {"id": section_id, "project_id": project_id, "name": clean_name, "rank": rank}

    allocator = ContainerAppendAllocator(SECTIONS, engine=eng)
    return allocator.append(Container(outer_id=project_id, container_id=project_id), _insert)


def get_section(project_id: str, section_id: str) -> dict:
    """Return the section if it belongs to the project; NotFound otherwise."""
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(
                "SELECT id, project_id, name, rank_key FROM section WHERE id = :sid AND project_id = :pid"
            ),
            {"sid": section_id, "pid": project_id},
        ).first()
    if row is None:
        raise NotFound(f"Section {section_id} not found in project {project_id}")
    return _section_dict(row)


def rename_section(project_id: str, section_id: str, name: str) -> dict:
    """Update a section's name in its own transaction and return the row."""
    eng = get_engine()
    try:
        with eng.begin() as conn:
            result = conn.execute(
                sql_text("UPDATE section SET name = :name WHERE id = :sid AND project_id = :pid"),
                {"name": str(name).strip(), "sid": section_id, "pid": project_id},
            )
    except Exception:
        logger.error("rename_section failed sid=%s pid=%s", section_id, project_id, exc_info=True)
        raise
    if not result.rowcount:
        raise NotFound(f"Section {section_id} not found in project {project_id}")
    return get_section(project_id, section_id)



def delete_section(project_id: str, section_id: str) -> dict:
    """Delete a section, moving its tasks to the project's unlocated bucket.

    The tasks keep their relative order and are appended after the current
    unlocated tail in the same transaction as the delete. Returns the deleted
    section with the ids of the relocated tasks.
    """
    section = get_section(project_id, section_id)

    def _section_tasks(conn: Connection) -> list[str]:
        rows = conn.execute(
            sql_text(
                "SELECT id FROM task WHERE project_id = :pid AND section_id = :sid ORDER BY rank_key ASC, id ASC"
            ),
            {"pid": project_id, "sid": section_id},
        ).fetchall()
        return [str(r[0]) for r in rows]

    def _delete(conn: Connection) -> None:
        result = conn.execute(
            sql_text("DELETE FROM section WHERE id = :sid AND project_id = :pid"),
            {"sid": section_id, "pid": project_id},
        )
        if not result.rowcount:
            raise NotFound(f"Section {section_id} not found in project {project_id}")

    allocator = ContainerAppendAllocator(TASKS, engine=get_engine())
    moved = allocator.relocate(
        Container(outer_id=project_id, container_id=None),
        _section_tasks,
        finish=_delete,
    )
    logger.info("section.deleted id=%s project_id=%s unlocated_tasks=%s", section_id, project_id, len(moved))
    return {"id": section["id"], "project_id": project_id, "name": section["name"], "unlocated_task_ids": moved}


__all__ = ["create_section", "get_section", "rename_section", "delete_section"]
