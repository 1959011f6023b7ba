"""Identifier normalization for path params and neighbor hints."""

from __future__ import annotations

import re
from typing import Optional

from taskboard.logic.errors import InvalidIdentifier

UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

# Prefixes board clients add to draggable element ids
DECORATIVE_PREFIXES = ("section-", "task-", "subtask-")


def strip_prefix(raw: str) -> str:
    for prefix in DECORATIVE_PREFIXES:
        if raw.startswith(prefix):
            return raw[len(prefix):]
    return raw


def normalize_id(raw: Optional[str], *, field: str = "id") -> Optional[str]:
    """Return the canonical lower-case UUID for ``raw``.

    None and blank strings return None. Anything else that is not a UUID
    after prefix stripping raises InvalidIdentifier.
    """
    if raw is None:
        return None
    token = str(raw).strip()
    if not token:
        return None
    token = strip_prefix(token)
    if not UUID_RE.match(token):
        raise InvalidIdentifier(f"Invalid {field}")
    return token.lower()


def require_id(raw: Optional[str], *, field: str = "id") -> str:
    """Like :func:`normalize_id` but a missing value is also invalid."""
    norm = normalize_id(raw, field=field)
    if norm is None:
        raise InvalidIdentifier(f"Invalid {field}")
    return norm


__all__ = ["UUID_RE", "DECORATIVE_PREFIXES", "strip_prefix", "normalize_id", "require_id"]
