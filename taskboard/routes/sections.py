"""Section routes: create (append at tail), rename, reorder and delete."""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from taskboard.logic.events import SECTION_CREATED, SECTION_DELETED, publish
from taskboard.logic.identifiers import require_id
from taskboard.logic.move_coordinator import MoveCoordinator
from taskboard.logic.ordering_scopes import SECTIONS
from taskboard.logic.repository_sections import create_section, delete_section, get_section, rename_section
from taskboard.models.requests import CreateSectionBody, RenameSectionBody, ReorderBody

router = APIRouter(prefix="/projects/{project_id}/section")
logger = logging.getLogger(__name__)


@router.post("", summary="Append a section to the project")
def create_section_route(project_id: str, body: CreateSectionBody) -> JSONResponse:
    pid = require_id(project_id, field="projectId")
    section = create_section(pid, body.name)
    publish(SECTION_CREATED, {"id": section["id"], "project_id": pid, "rank": section["rank"]})
    return JSONResponse(section, status_code=201)


@router.patch("/{section_id}", summary="Rename a section")
def rename_section_route(project_id: str, section_id: str, body: RenameSectionBody) -> JSONResponse:
    pid = require_id(project_id, field="projectId")
    sid = require_id(section_id, field="sectionId")
    return JSONResponse(rename_section(pid, sid, body.name), status_code=200)


@router.put("/{section_id}/move", summary="Reorder a section within its project")
def move_section_route(project_id: str, section_id: str, body: ReorderBody) -> JSONResponse:
    logger.info(
        "section.move.entry project_id=%s section_id=%s fields=%s",
        project_id,
        section_id,
        sorted(body.model_fields_set),
    )
    result = MoveCoordinator(SECTIONS).move(section_id, body.to_move_request(), outer_id=project_id)
    return JSONResponse(get_section(result.row.outer_id, result.row.id), status_code=200)


@router.delete("/{section_id}", summary="Delete a section; its tasks become unlocated")
def delete_section_route(project_id: str, section_id: str) -> JSONResponse:
    pid = require_id(project_id, field="projectId")
    sid = require_id(section_id, field="sectionId")
    deleted = delete_section(pid, sid)
    publish(
        SECTION_DELETED,
        {"id": sid, "project_id": pid, "unlocated_task_ids": deleted["unlocated_task_ids"]},
    )
    return JSONResponse(deleted, status_code=200)


__all__ = ["router"]
