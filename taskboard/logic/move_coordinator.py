"""Single-item move orchestration for any ordering scope.

A move resolves its destination container, derives boundaries from neighbor
hints, allocates a rank between them and writes container and rank in one
transaction. Concurrent movers that land on the same key are detected by the
unique index on (container, rank): the losing writer re-reads the current
order and tries again, up to a fixed number of attempts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from taskboard.config import get_config
from taskboard.db.base import get_engine
from taskboard.logic import rank_allocator
from taskboard.logic.errors import Conflict, NotFound
from taskboard.logic.events import MOVED_EVENTS, publish
from taskboard.logic.identifiers import require_id
from taskboard.logic.neighbor_resolver import normalize_hint, resolve_neighbors
from taskboard.logic.ordering_scopes import Container, OrderedRow, OrderingScope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoChange:
    """Reorder within the item's current container."""


@dataclass(frozen=True)
class MoveToDefault:
    """Move into the scope's default bucket (unlocated tasks)."""


@dataclass(frozen=True)
class MoveTo:
    container_id: str


ContainerTarget = Union[NoChange, MoveToDefault, MoveTo]


@dataclass(frozen=True)
class MoveRequest:
    target: ContainerTarget = field(default_factory=NoChange)
    before_id: Optional[str] = None
    after_id: Optional[str] = None


@dataclass(frozen=True)
class MoveResult:
    row: OrderedRow
    changed: bool
    attempts: int


class MoveCoordinator:
    def __init__(
        self,
        scope: OrderingScope,
        engine: Optional[Engine] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        self.scope = scope
        self._engine = engine
        self.max_attempts = max_attempts or get_config().ordering.move_max_attempts

    @property
    def engine(self) -> Engine:
        return self._engine or get_engine()

    def move(self, item_id: str, request: MoveRequest, *, outer_id: Optional[str] = None) -> MoveResult:
        """Move ``item_id`` according to ``request``.

        ``outer_id`` is the enclosing project for project-scoped collections;
        the item must belong to it. Raises InvalidIdentifier, NotFound or
        Conflict; on any error nothing is written.
        """
        scope = self.scope
        iid = require_id(item_id, field=f"{scope.name}Id")
        oid = require_id(outer_id, field="projectId") if scope.outer_column else None
        target = self._normalize_target(request.target)
        before_id = normalize_hint(request.before_id, iid, field="beforeId")
        after_id = normalize_hint(request.after_id, iid, field="afterId")

        with self.engine.connect() as conn:
            current = self._load(conn, iid, oid)
            destination = self._destination(conn, current, target)

        for attempt in range(1, self.max_attempts + 1):
            try:
                result = self._attempt(iid, oid, destination, before_id, after_id, attempt)
            except IntegrityError:
                logger.warning(
                    "move.rank_collision scope=%s item=%s attempt=%s/%s",
                    scope.name,
                    iid,
                    attempt,
                    self.max_attempts,
                )
                continue
            if result.changed:
                publish(
                    MOVED_EVENTS.get(scope.name, f"{scope.name}.moved"),
                    {
                        "id": iid,
                        "container_id": result.row.container_id,
                        "rank": result.row.rank,
                    },
                )
            return result

        logger.error(
            "move.conflict_exhausted scope=%s item=%s attempts=%s",
            scope.name,
            iid,
            self.max_attempts,
        )
        raise Conflict(f"Could not allocate a unique rank for {scope.name} {iid}; retry the move")

    def _normalize_target(self, target: ContainerTarget) -> ContainerTarget:
        if isinstance(target, MoveTo):
            field_name = f"target{self.scope.container_table.capitalize()}Id"
            return MoveTo(container_id=require_id(target.container_id, field=field_name))
        return target

    def _load(self, conn: Connection, item_id: str, outer_id: Optional[str]) -> OrderedRow:
        row = self.scope.load_item(conn, item_id, outer_id)
        if row is None:
            where = f" in project {outer_id}" if outer_id else ""
            raise NotFound(f"{self.scope.name.capitalize()} {item_id} not found{where}")
        return row

    def _destination(self, conn: Connection, current: OrderedRow, target: ContainerTarget) -> Container:
        if isinstance(target, NoChange):
            return current.container
        if isinstance(target, MoveToDefault):
            if not self.scope.has_default_bucket:
                raise NotFound(f"{self.scope.name.capitalize()} has no default container")
            return Container(outer_id=current.outer_id, container_id=None)
        if self.scope.outer_column == self.scope.container_column:
            # Container is the outer scope itself (sections in their project)
            raise NotFound(f"{self.scope.name.capitalize()} cannot change its {self.scope.container_table}")
        destination = Container(outer_id=current.outer_id, container_id=target.container_id)
        if not self.scope.container_exists(conn, destination):
            where = f" in project {current.outer_id}" if current.outer_id else ""
            raise NotFound(
                f"{self.scope.container_table.capitalize()} {target.container_id} not found{where}"
            )
        return destination

    def _attempt(
        self,
        item_id: str,
        outer_id: Optional[str],
        destination: Container,
        before_id: Optional[str],
        after_id: Optional[str],
        attempt: int,
    ) -> MoveResult:
        scope = self.scope
        with self.engine.begin() as conn:
            current = self._load(conn, item_id, outer_id)
            if destination.container_id is not None and not scope.container_exists(conn, destination):
                raise Conflict(
                    f"{scope.container_table.capitalize()} {destination.container_id} disappeared during move"
                )
            bounds = resolve_neighbors(conn, scope, destination, item_id, before_id, after_id)
            new_rank = rank_allocator.between_keys(bounds.lower, bounds.upper)

            same_container = current.container_id == destination.container_id
            if same_container and current.rank == new_rank:
                logger.info("move.noop scope=%s item=%s rank=%s", scope.name, item_id, new_rank)
                return MoveResult(row=current, changed=False, attempts=attempt)

            scope.write_position(conn, item_id, destination, new_rank)
            logger.info(
                "move.applied scope=%s item=%s from=%s to=%s rank=%s->%s lower=%s upper=%s attempt=%s",
                scope.name,
                item_id,
                current.container_id,
                destination.container_id,
                current.rank,
                new_rank,
                bounds.lower,
                bounds.upper,
                attempt,
            )
        return MoveResult(
            row=OrderedRow(
                id=item_id,
                outer_id=current.outer_id,
                container_id=destination.container_id,
                rank=new_rank,
            ),
            changed=True,
            attempts=attempt,
        )


__all__ = [
    "NoChange",
    "MoveToDefault",
    "MoveTo",
    "ContainerTarget",
    "MoveRequest",
    "MoveResult",
    "MoveCoordinator",
]
