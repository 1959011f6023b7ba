"""Neighbor hint resolution against the authoritative order.

Clients send the ids they saw next to the drop position: ``after_id`` is the
item that should end up directly above the moved item and ``before_id`` the
one directly below it. Those hints can be stale (another user moved things in
between) so only the named row's *rank* is trusted, and only when the row
still lives in the destination container. When just one side resolves, the
other side is re-derived from the current order so the new key never skips
past rows the client did not know about.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Connection

from taskboard.logic.identifiers import normalize_id
from taskboard.logic.ordering_scopes import Container, OrderingScope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Boundaries:
    lower: Optional[str]
    upper: Optional[str]


def normalize_hint(raw: Optional[str], moved_id: str, *, field: str) -> Optional[str]:
    """Normalize a neighbor hint; a hint naming the moved item is dropped."""
    hint = normalize_id(raw, field=field)
    if hint is not None and hint == moved_id:
        logger.info("neighbor.self_reference field=%s id=%s", field, moved_id)
        return None
    return hint


def resolve_neighbors(
    conn: Connection,
    scope: OrderingScope,
    container: Container,
    moved_id: str,
    before_id: Optional[str],
    after_id: Optional[str],
) -> Boundaries:
    """Return the rank boundaries the moved item must land between.

    ``before_id`` and ``after_id`` are expected to be normalized already.
    """
    before_rank = scope.rank_in_container(conn, container, before_id) if before_id else None
    after_rank = scope.rank_in_container(conn, container, after_id) if after_id else None

    if before_id and before_rank is None:
        logger.info("neighbor.stale scope=%s field=beforeId id=%s", scope.name, before_id)
    if after_id and after_rank is None:
        logger.info("neighbor.stale scope=%s field=afterId id=%s", scope.name, after_id)

    if after_rank is not None and before_rank is not None:
        return Boundaries(lower=after_rank, upper=before_rank)
    if after_rank is not None:
        return Boundaries(
            lower=after_rank,
            upper=scope.next_rank(conn, container, after_rank, exclude_id=moved_id),
        )
    if before_rank is not None:
        return Boundaries(
            lower=scope.prev_rank(conn, container, before_rank, exclude_id=moved_id),
            upper=before_rank,
        )
    # Nothing usable: append at the tail
    return Boundaries(lower=scope.max_rank(conn, container, exclude_id=moved_id), upper=None)


__all__ = ["Boundaries", "normalize_hint", "resolve_neighbors"]
