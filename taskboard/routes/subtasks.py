"""Subtask routes: reorder within the parent task, update and delete.

A subtask's container is its task and cannot change over HTTP.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from taskboard.logic.events import SUBTASK_DELETED, SUBTASK_UPDATED, publish
from taskboard.logic.identifiers import require_id
from taskboard.logic.move_coordinator import MoveCoordinator
from taskboard.logic.ordering_scopes import SUBTASKS
from taskboard.logic.repository_subtasks import delete_subtask, get_subtask, update_subtask
from taskboard.models.requests import ReorderBody, UpdateSubtaskBody

router = APIRouter(prefix="/subtask")
logger = logging.getLogger(__name__)


@router.patch("/{subtask_id}/move", summary="Reorder a subtask within its task")
def move_subtask_route(subtask_id: str, body: ReorderBody) -> JSONResponse:
    logger.info("subtask.move.entry subtask_id=%s fields=%s", subtask_id, sorted(body.model_fields_set))
    result = MoveCoordinator(SUBTASKS).move(subtask_id, body.to_move_request())
    return JSONResponse(get_subtask(result.row.id), status_code=200)


@router.put("/{subtask_id}", summary="Update subtask details")
def update_subtask_route(subtask_id: str, body: UpdateSubtaskBody) -> JSONResponse:
    sid = require_id(subtask_id, field="subtaskId")
    patch = body.to_patch()
    subtask = update_subtask(sid, patch)
    if patch:
        publish(SUBTASK_UPDATED, {"id": sid, "fields": sorted(patch)})
    return JSONResponse(subtask, status_code=200)


@router.delete("/{subtask_id}", summary="Delete a subtask")
def delete_subtask_route(subtask_id: str) -> JSONResponse:
    sid = require_id(subtask_id, field="subtaskId")
    deleted = delete_subtask(sid)
    publish(SUBTASK_DELETED, {"id": sid, "task_id": deleted["task_id"]})
    return JSONResponse(deleted, status_code=200)


__all__ = ["router"]
