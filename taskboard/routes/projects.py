"""Project and board routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from taskboard.logic.board import get_board
from taskboard.logic.events import TASK_CREATED, publish
from taskboard.logic.identifiers import normalize_id, require_id
from taskboard.logic.repository_projects import create_project, get_project
from taskboard.logic.repository_tasks import create_task
from taskboard.models.requests import UNLOCATED_SENTINELS, CreateProjectBody, CreateTaskBody

router = APIRouter(prefix="/projects")
logger = logging.getLogger(__name__)


@router.post("", summary="Create a project")
def create_project_route(body: CreateProjectBody) -> JSONResponse:
    project = create_project(body.name, body.desc)
    logger.info("project.created id=%s name=%s", project["id"], project["name"])
    return JSONResponse(project, status_code=201)


@router.get("/{project_id}", summary="Get a project")
def get_project_route(project_id: str) -> JSONResponse:
    pid = require_id(project_id, field="projectId")
    return JSONResponse(get_project(pid), status_code=200)


@router.get("/{project_id}/tasks", summary="Read the ordered board")
def get_board_route(project_id: str) -> JSONResponse:
    pid = require_id(project_id, field="projectId")
    return JSONResponse(get_board(pid), status_code=200)


@router.post("/{project_id}/task", summary="Create a task at the tail of its container")
def create_task_route(project_id: str, body: CreateTaskBody) -> JSONResponse:
    pid = require_id(project_id, field="projectId")
    section_id = None
    if body.section is not None and body.section.strip().lower() not in UNLOCATED_SENTINELS:
        section_id = normalize_id(body.section, field="section")
    task = create_task(pid, body.name, section_id=section_id, desc=body.desc)
    publish(TASK_CREATED, {"id": task["id"], "section_id": task["section_id"], "rank": task["rank"]})
    return JSONResponse(task, status_code=201)


__all__ = ["router"]
