"""Project data access helpers.

Encapsulates DB reads/writes for projects, keeping the HTTP layer free of
direct SQL. Failures are logged at ERROR with exc_info and re-raised.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from taskboard.db.base import get_engine
from taskboard.logic.errors import NotFound

logger = logging.getLogger(__name__)


def color_from_name(name: str) -> str:
    """Return a stable ``#RRGGBB`` color derived from ``name``.

    Uses the 31-multiplier string hash over UTF-16 code units with 32-bit
    signed wraparound so a project keeps the same color across services.
    """
    units = name.encode("utf-16-le")
    h = 0
    for i in range(0, len(units), 2):
        code = units[i] | (units[i + 1] << 8)
        h = code + ((h << 5) - h)
        h = ((h + 2**31) % 2**32) - 2**31
    return "#" + format(h & 0xFFFFFF, "06X")


def _project_dict(row) -> dict:  # type: ignore[no-untyped-def]
    return {
        "id": str(row[0]),
        "name": str(row[1]),
        "desc": row[2],
        "color": str(row[3]),
        "created_at": str(row[4]),
    }


def create_project(name: str, desc: Optional[str] = None) -> dict:
    """Insert a project row and return it."""
    project_id = str(uuid.uuid4())
    clean_name = str(name).strip()
    created_at = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
    color = color_from_name(clean_name)
    eng = get_engine()
    try:
        with eng.begin() as conn:
            conn.execute(
                sql_text(
                    """
                    INSERT INTO project (id, name, description, color, created_at)
                    VALUES (:id, :name, :desc, :color, :created_at)
                    """
                ),
                {"id": project_id, "name": clean_name, "desc": desc, "color": color, "created_at": created_at},
            )
    except Exception:
        logger.error("create_project insert failed name=%s", clean_name, exc_info=True)
        raise
    return {"id": project_id, "name": clean_name, "desc": desc, "color": color, "created_at": created_at}


def project_exists(conn: Connection, project_id: str) -> bool:
    return conn.execute(
        sql_text("SELECT 1 FROM project WHERE id = :pid"),
        {"pid": project_id},
    ).first() is not None


def ensure_project_exists(conn: Connection, project_id: str) -> None:
    if not project_exists(conn, project_id):
        raise NotFound(f"Project with id {project_id} not found")


def get_project(project_id: str) -> dict:
    """Return the project row as a dict; NotFound when absent."""
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text("SELECT id, name, description, color, created_at FROM project WHERE id = :pid"),
            {"pid": project_id},
        ).first()
    if row is None:
        raise NotFound(f"Project with id {project_id} not found")
    return _project_dict(row)


__all__ = [
    "color_from_name",
    "create_project",
    "project_exists",
    "ensure_project_exists",
    "get_project",
]
