"""Lightweight SQL migrations runner.

Applies .sql files in lexical order from the local `migrations/` directory.
Skips rollback files and records applied filenames in a file-backed journal
(`migrations/_journal.json` unless another path is given) to avoid reapplying
the same migration. Intended for local development and CI; production
environments should use the platform's migration mechanism.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


def _iter_sql_files(root: Path) -> Iterable[Path]:
    for p in sorted(root.glob("*.sql")):
        # Skip rollback scripts in forward runs
        if "rollback" in p.name.lower():
            continue
        yield p


def _exec_sql_compat(conn: Connection, sql: str) -> None:
    """Execute SQL text, tolerating multi-statement files on SQLite.

    SQLite's DB-API (pysqlite) does not allow multiple statements in a single
    execute() call, so for SQLite full-line `--` comments are dropped first and
    the remainder is split on ';', skipping empty segments. Other dialects
    receive the full script as-is.
    """
    name = (getattr(conn.dialect, "name", "") or "").lower()
    if "sqlite" in name:
        body = "\n".join(ln for ln in sql.splitlines() if not ln.strip().startswith("--"))
        for stmt in body.split(";"):
            s = stmt.strip()
            if not s:
                continue
            if s.upper() in {"BEGIN", "COMMIT", "END"}:
                continue
            conn.exec_driver_sql(s)
        return
    conn.exec_driver_sql(sql)


def _load_journal(journal_path: Path) -> list[dict]:
    if not journal_path.exists():
        return []
    try:
        data = json.loads(journal_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        logger.error("migration_journal_parse_failed path=%s", str(journal_path), exc_info=True)
        return []
    if not isinstance(data, list):
        return []
    return [e for e in data if isinstance(e, dict)]


def apply_migrations(
    engine: Engine,
    migrations_dir: str | os.PathLike[str] | None = None,
    journal_path: str | os.PathLike[str] | None = None,
    *,
    fresh: bool = False,
) -> list[str]:
    """Apply pending migrations and return the filenames applied in this run.

    ``fresh`` ignores and rewrites the journal, for a database with no schema
    yet. The journal is a file, not a table, so it cannot tell databases apart.
    """
    root = Path(migrations_dir) if migrations_dir is not None else DEFAULT_MIGRATIONS_DIR
    if not root.exists():  # pragma: no cover - optional
        logger.warning("migrations_dir_missing path=%s", str(root))
        return []

    journal = Path(journal_path) if journal_path is not None else root / "_journal.json"
    journal_entries = [] if fresh else _load_journal(journal)
    applied = {
        Path(e.get("filename", "")).name
        for e in journal_entries
        if isinstance(e.get("filename"), str)
    }

    newly_applied: list[str] = []
    with engine.begin() as conn:
        for sql_path in _iter_sql_files(root):
            fname = sql_path.name
            if fname in applied:
                continue
            sql = sql_path.read_text(encoding="utf-8")
            if not sql.strip():
                continue
            try:
                _exec_sql_compat(conn, sql)
            except Exception:
                logger.error("migration_failed file=%s", fname, exc_info=True)
                raise
            logger.info("migration_applied file=%s", fname)
            newly_applied.append(fname)
            journal_entries.append({
                "filename": f"migrations/{fname}",
                # applied_at is ISO-8601 UTC without fractional seconds
                "applied_at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
            })

    if newly_applied:
        _atomic_write_json(journal, journal_entries)
    return newly_applied


def _atomic_write_json(path: Path, content: list[dict]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(content, ensure_ascii=False, indent=2), encoding="utf-8")
    os.replace(tmp_path, path)
