from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import inspect as sql_inspect
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from taskboard.db.base import get_engine
from taskboard.db.migrations_runner import apply_migrations
from taskboard.http.problem import (
    handle_http_exception,
    handle_ordering_error,
    handle_request_validation_error,
    handle_unexpected_error,
)
from taskboard.http.request_id import RequestIdMiddleware
from taskboard.logging_setup import configure_logging
from taskboard.logic.errors import OrderingError
from taskboard.middleware.cors import apply_cors
from taskboard.routes import api_router

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUTHY


def _health_check() -> Callable[[], dict]:
    def check() -> dict:
        try:
            with get_engine().connect() as conn:
                conn.execute(sql_text("SELECT 1"))
            return {"status": "ok", "db": True}
        except SQLAlchemyError as e:
            logger.error("Health DB check failed", exc_info=True)
            return {"status": "degraded", "db": False, "reason": str(e)}

    return check


def _ensure_schema() -> None:
    """Apply migrations when enabled, or when the board tables are missing."""
    try:
        engine = get_engine()
    except Exception:
        logger.error("Failed to build DB engine before migrations", exc_info=True)
        raise
    try:
        schema_missing = not sql_inspect(engine).has_table("task")
    except SQLAlchemyError:
        logger.error("Schema readiness check failed; proceeding to migrations if enabled", exc_info=True)
        schema_missing = False
    if schema_missing:
        logger.info("Board tables missing; applying migrations regardless of AUTO_APPLY_MIGRATIONS")
    elif not _flag("AUTO_APPLY_MIGRATIONS"):
        logger.info("AUTO_APPLY_MIGRATIONS disabled; skipping migrations at startup")
        return
    try:
        applied = apply_migrations(
            engine,
            journal_path=os.getenv("MIGRATIONS_JOURNAL") or None,
            fresh=schema_missing,
        )
    except Exception:
        logger.error("Failed to apply migrations at startup", exc_info=True)
        raise
    logger.info("startup_migrations applied=%s", applied)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    _ensure_schema()
    yield


def create_app() -> FastAPI:
    # Configure global logging before app instantiation so all modules emit
    configure_logging()
    app = FastAPI(title="Taskboard", lifespan=_lifespan)

    # Global problem+json handlers
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(OrderingError, handle_ordering_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    apply_cors(app)
    app.add_middleware(RequestIdMiddleware)

    # Routers
    app.include_router(api_router, prefix="/api/v1")
    if _flag("ENABLE_TEST_ROUTES"):
        # Exposes '/__test__/events' without the API prefix
        from taskboard.routes.test_support import router as test_support_router
        app.include_router(test_support_router)

    health_check = _health_check()

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return health_check()

    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
