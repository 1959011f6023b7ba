"""Functional tests for application startup against a database with no schema.

Each test points the app at its own empty SQLite database with
AUTO_APPLY_MIGRATIONS unset; startup must build the schema before serving.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import inspect

from taskboard.db.base import get_engine, reset_engine
from taskboard.db.migrations_runner import DEFAULT_MIGRATIONS_DIR
from taskboard.main import create_app

API = "/api/v1"


@pytest.fixture
def fresh_database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Swap the shared engine for an empty database; restore it afterwards."""
    journal = tmp_path / "journal.json"
    monkeypatch.delenv("AUTO_APPLY_MIGRATIONS", raising=False)
    monkeypatch.setenv("MIGRATIONS_JOURNAL", str(journal))
    reset_engine()
    yield journal
    reset_engine()


@pytest.mark.parametrize("url_kind", ["file", "memory"])
def test_startup_migrates_empty_database(
    fresh_database: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, url_kind: str
) -> None:
    url = f"sqlite:///{tmp_path / 'fresh.db'}" if url_kind == "file" else "sqlite:///:memory:"
    monkeypatch.setenv("TEST_DATABASE_URL", url)

    with TestClient(create_app()) as client:
        health = client.get("/health")
        created = client.post(f"{API}/projects", json={"name": "Fresh"})
        listed = client.get(f"{API}/projects/{created.json()['id']}")

    assert health.status_code == 200
    assert health.json() == {"status": "ok", "db": True}
    assert created.status_code == 201, created.text
    assert listed.status_code == 200
    assert inspect(get_engine()).has_table("task")


def test_startup_ignores_journal_written_for_another_database(
    fresh_database: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    names = sorted(p.name for p in DEFAULT_MIGRATIONS_DIR.glob("*.sql"))
    fresh_database.write_text(
        json.dumps([{"filename": f"migrations/{n}", "applied_at": "2024-01-01T00:00:00Z"} for n in names]),
        encoding="utf-8",
    )
    monkeypatch.setenv("TEST_DATABASE_URL", f"sqlite:///{tmp_path / 'second.db'}")

    with TestClient(create_app()) as client:
        created = client.post(f"{API}/projects", json={"name": "Second"})
        pid = created.json()["id"]
        task = client.post(f"{API}/projects/{pid}/task", json={"name": "first"})

    assert created.status_code == 201, created.text
    assert task.status_code == 201, task.text
    assert task.json()["rank"] == "8888888888888888"
