"""ASGI entrypoint: ``uvicorn taskboard.asgi:app``."""

from taskboard.main import create_app

app = create_app()
