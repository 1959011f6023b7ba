"""FastAPI application package for the taskboard service.

Exposes the application factory. Ordering engine and repositories live in
`taskboard/logic/`, request bodies in `taskboard/models/` and route handlers
in `taskboard/routes/`.
"""

from __future__ import annotations

from taskboard.main import create_app

__all__ = ["create_app"]
