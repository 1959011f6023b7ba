"""Task routes: partial update, move between/within sections and subtask creation."""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from taskboard.logic.events import SUBTASK_CREATED, TASK_UPDATED, publish
from taskboard.logic.identifiers import require_id
from taskboard.logic.move_coordinator import MoveCoordinator
from taskboard.logic.ordering_scopes import TASKS
from taskboard.logic.repository_subtasks import create_subtask
from taskboard.logic.repository_tasks import get_task, update_task
from taskboard.models.requests import CreateSubtaskBody, MoveTaskBody, UpdateTaskBody

router = APIRouter()
logger = logging.getLogger(__name__)


@router.put("/projects/{project_id}/task/{task_id}/move", summary="Move or reorder a task")
def move_task_route(project_id: str, task_id: str, body: MoveTaskBody) -> JSONResponse:
    request = body.to_move_request()
    logger.info(
        "task.move.entry project_id=%s task_id=%s target=%s fields=%s",
        project_id,
        task_id,
        type(request.target).__name__,
        sorted(body.model_fields_set),
    )
    result = MoveCoordinator(TASKS).move(task_id, request, outer_id=project_id)
    return JSONResponse(get_task(result.row.id, result.row.outer_id), status_code=200)


@router.post("/task/{task_id}/subtask", summary="Append a subtask to a task")
def create_subtask_route(task_id: str, body: CreateSubtaskBody) -> JSONResponse:
    tid = require_id(task_id, field="taskId")
    subtask = create_subtask(tid, body.name)
    publish(SUBTASK_CREATED, {"id": subtask["id"], "task_id": tid, "rank": subtask["rank"]})
    return JSONResponse(subtask, status_code=201)


@router.patch("/task/{task_id}", summary="Update task details")
def update_task_route(task_id: str, body: UpdateTaskBody) -> JSONResponse:
    tid = require_id(task_id, field="taskId")
    patch = body.to_patch()
    task = update_task(tid, patch)
    publish(TASK_UPDATED, {"id": tid, "fields": sorted(patch)})
    return JSONResponse(task, status_code=200)


__all__ = ["router"]
