"""APIRouter registration for the taskboard service."""

from __future__ import annotations

from fastapi import APIRouter

from taskboard.routes.projects import router as projects_router
from taskboard.routes.sections import router as sections_router
from taskboard.routes.subtasks import router as subtasks_router
from taskboard.routes.tasks import router as tasks_router

api_router = APIRouter()
api_router.include_router(projects_router, tags=["Projects", "Board"])
api_router.include_router(sections_router, tags=["Sections"])
api_router.include_router(tasks_router, tags=["Tasks"])
api_router.include_router(subtasks_router, tags=["Subtasks"])

__all__ = ["api_router"]
