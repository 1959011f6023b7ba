"""Configuration utilities for the taskboard service.

This module loads application configuration with the following rules:
- Primary source: `taskboard_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("taskboard_config.json")
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        # Recoverable: log and ignore unreadable override
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class DatabaseConfig(BaseModel):
    dsn: str

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class OrderingConfig(BaseModel):
    move_max_attempts: int = Field(default=3)
    append_max_attempts: int = Field(default=3)

    @field_validator("move_max_attempts", "append_max_attempts")
    @classmethod
    def attempts_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("ordering attempts must be at least 1")
        return v


class AppConfig(BaseModel):
    database: DatabaseConfig
    ordering: OrderingConfig


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:  # pragma: no cover - defensive
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) taskboard_config.json at project root
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    dsn = (
        _env("DATABASE_URL")
        or _read_config_file("database.url")
        or _base("database.dsn")
        or "sqlite+pysqlite:///:memory:"
    )
    move_attempts_text = (
        _env("RANK_MOVE_MAX_ATTEMPTS")
        or _read_config_file("ordering.move_max_attempts")
        or _base("ordering.move_max_attempts", "3")
    )
    append_attempts_text = (
        _env("RANK_APPEND_MAX_ATTEMPTS")
        or _read_config_file("ordering.append_max_attempts")
        or _base("ordering.append_max_attempts", "3")
    )

    try:
        cfg = AppConfig(
            database=DatabaseConfig(dsn=dsn),
            ordering=OrderingConfig(
                move_max_attempts=int(str(move_attempts_text).strip()),
                append_max_attempts=int(str(append_attempts_text).strip()),
            ),
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Process-wide cached configuration; call ``get_config.cache_clear()`` to reload."""
    return load_config()


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "OrderingConfig",
    "load_config",
    "get_config",
]
