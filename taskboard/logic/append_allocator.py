"""Tail allocation for newly created ordered rows.

New rows are appended after the current maximum rank of their container, or
get the centered first rank when the container is empty. Two creators racing
for the same tail both compute the same key; the unique index rejects the
second insert, which re-reads the new maximum and tries again.

Existing rows can join a tail in bulk (tasks of a deleted section falling
back to the unlocated bucket) through :meth:`ContainerAppendAllocator.relocate`.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, TypeVar

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from taskboard.config import get_config
from taskboard.db.base import get_engine
from taskboard.logic import rank_allocator
from taskboard.logic.errors import Conflict
from taskboard.logic.ordering_scopes import Container, OrderingScope

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ContainerAppendAllocator:
    def __init__(
        self,
        scope: OrderingScope,
        engine: Optional[Engine] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        self.scope = scope
        self._engine = engine
        self.max_attempts = max_attempts or get_config().ordering.append_max_attempts

    @property
    def engine(self) -> Engine:
        return self._engine or get_engine()

    def append(self, container: Container, insert: Callable[[Connection, str], T]) -> T:
        """Run ``insert(conn, rank)`` with a tail rank for ``container``.

        ``insert`` executes inside the same transaction as the max-rank read
        and returns whatever the caller needs (usually the new row).
        """

        def _body(conn: Connection, attempt: int) -> T:
            last = self.scope.max_rank(conn, container)
            rank = rank_allocator.after_key(last)
            created = insert(conn, rank)
            logger.info(
                "append.applied scope=%s container=%s rank=%s attempt=%s",
                self.scope.name,
                container.container_id,
                rank,
                attempt,
            )
            return created

        return self._with_retry(container, _body, what=f"new {self.scope.name}")

    def relocate(
        self,
        container: Container,
        collect: Callable[[Connection], Iterable[str]],
        finish: Optional[Callable[[Connection], None]] = None,
    ) -> list[str]:
        """Move existing rows onto the tail of ``container`` in one transaction.

        ``collect(conn)`` returns the ids to move in their final order. They get
        evenly spaced ranks after the container's current maximum. ``finish``
        runs last in the same transaction. Returns the moved ids.
        """

        def _body(conn: Connection, attempt: int) -> list[str]:
            ids = list(collect(conn))
            ranks = rank_allocator.spread_after(self.scope.max_rank(conn, container), len(ids))
            for item_id, rank in zip(ids, ranks):
                self.scope.write_position(conn, item_id, container, rank)
            if finish is not None:
                finish(conn)
            logger.info(
                "append.relocated scope=%s container=%s count=%s attempt=%s",
                self.scope.name,
                container.container_id,
                len(ids),
                attempt,
            )
            return ids

        return self._with_retry(container, _body, what=f"relocated {self.scope.name} rows")

    def _with_retry(self, container: Container, body: Callable[[Connection, int], T], *, what: str) -> T:
        for attempt in range(1, self.max_attempts + 1):
            try:
                with self.engine.begin() as conn:
                    return body(conn, attempt)
            except IntegrityError:
                logger.warning(
                    "append.rank_collision scope=%s container=%s attempt=%s/%s",
                    self.scope.name,
                    container.container_id,
                    attempt,
                    self.max_attempts,
                    exc_info=True,
                )
        logger.error(
            "append.conflict_exhausted scope=%s container=%s attempts=%s",
            self.scope.name,
            container.container_id,
            self.max_attempts,
        )
        raise Conflict(f"Could not allocate a unique rank for {what}; retry the request")


__all__ = ["ContainerAppendAllocator"]
