"""Board read model.

Assembles the project's board: unlocated tasks followed by sections, each
list in ascending rank order (ties broken by id) with subtasks nested under
their tasks. This is the view the client's neighbor hints are taken from.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from sqlalchemy import text as sql_text

from taskboard.db.base import get_engine
from taskboard.logic.errors import NotFound
from taskboard.logic.repository_projects import ensure_project_exists
from taskboard.logic.repository_subtasks import list_project_subtasks
from taskboard.logic.repository_tasks import list_project_tasks

logger = logging.getLogger(__name__)


def get_board(project_id: str) -> dict:
    eng = get_engine()
    with eng.connect() as conn:
        ensure_project_exists(conn, project_id)
        sections = conn.execute(
            sql_text(
                "SELECT id, name, rank_key FROM section WHERE project_id = :pid ORDER BY rank_key ASC, id ASC"
            ),
            {"pid": project_id},
        ).fetchall()
        tasks = list_project_tasks(conn, project_id)
        subtasks = list_project_subtasks(conn, project_id)

    if not tasks and not sections:
        raise NotFound(f"No tasks found in project {project_id}")

    subtasks_by_task: Dict[str, List[dict]] = {}
    for sub in subtasks:
        subtasks_by_task.setdefault(sub["task_id"], []).append(sub)

    tasks_by_section: Dict[str | None, List[dict]] = {}
    for task in tasks:
        task["subtasks"] = subtasks_by_task.get(task["id"], [])
        tasks_by_section.setdefault(task["section_id"], []).append(task)

    logger.info(
        "board.read project=%s sections=%s tasks=%s subtasks=%s",
        project_id,
        len(sections),
        len(tasks),
        len(subtasks),
    )
    return {
        "unlocated": tasks_by_section.get(None, []),
        "sections": [
            {
                "id": str(s[0]),
                "name": str(s[1]),
                "rank": str(s[2]),
                "tasks": tasks_by_section.get(str(s[0]), []),
            }
            for s in sections
        ],
    }


__all__ = ["get_board"]
