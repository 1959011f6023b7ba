"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and handler callables that produce
application/problem+json responses for HTTP errors, request validation
failures, ordering engine errors and unexpected exceptions.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from taskboard.logic.errors import OrderingError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status_code = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        detail = exc.detail
    else:
        detail = {"title": "Error", "status": status_code, "detail": str(exc.detail or "")}
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()}
    return JSONResponse(
        detail,
        status_code=status_code,
        media_type=PROBLEM_MEDIA_TYPE,
        headers=headers or None,
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    problem = {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Request validation failed",
        "code": "REQUEST_VALIDATION_FAILED",
        "errors": jsonable_encoder(exc.errors()),
    }
    logger.info(
        "validation_422 route=%s method=%s errors_cnt=%s",
        request.url.path,
        request.method,
        len(problem["errors"]),
    )
    return JSONResponse(problem, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_ordering_error(request: Request, exc: OrderingError) -> JSONResponse:  # noqa: D401
    problem = exc.to_problem()
    logger.info(
        "error_handler.handle request_id=%s route=%s method=%s status=%s code=%s detail=%s",
        getattr(request.state, "request_id", None),
        request.url.path,
        request.method,
        problem["status"],
        problem["code"],
        problem["detail"],
    )
    return JSONResponse(problem, status_code=exc.status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error route=%s", request.url.path, exc_info=exc)
    return JSONResponse(
        {"title": "Internal Server Error", "status": 500},
        status_code=500,
        media_type=PROBLEM_MEDIA_TYPE,
    )


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_ordering_error",
    "handle_unexpected_error",
]
