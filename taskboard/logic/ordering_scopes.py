"""Persistence accessors for the three ordered collections.

One :class:`OrderingScope` describes how a table participates in ordering:
which column holds the container reference, which optional outer column
bounds lookups (tasks are always read within their project), and which table
holds the containers themselves. The move and append engines only talk to
these accessors, so sections, tasks and subtasks share a single engine.

Table and column names come from the module-level instances below, never from
request data; all values are bound parameters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    """The scope one ordered collection lives in.

    ``container_id`` None is the default bucket (unlocated tasks).
    ``outer_id`` is the enclosing project for scopes that have one.
    """

    outer_id: Optional[str]
    container_id: Optional[str]


@dataclass(frozen=True)
class OrderedRow:
    id: str
    outer_id: Optional[str]
    container_id: Optional[str]
    rank: str

    @property
    def container(self) -> Container:
        return Container(outer_id=self.outer_id, container_id=self.container_id)


@dataclass(frozen=True)
class OrderingScope:
    name: str
    table: str
    container_column: str
    container_table: str
    outer_column: Optional[str] = None
    container_outer_column: Optional[str] = None
    has_default_bucket: bool = False

    # -- SQL helpers -------------------------------------------------------

    def _container_filter(self, container: Container) -> Tuple[str, Dict[str, Any]]:
        clauses: List[str] = []
        params: Dict[str, Any] = {}
        if self.outer_column:
            clauses.append(f"{self.outer_column} = :outer_id")
            params["outer_id"] = container.outer_id
        if container.container_id is None:
            clauses.append(f"{self.container_column} IS NULL")
        else:
            clauses.append(f"{self.container_column} = :container_id")
            params["container_id"] = container.container_id
        return " AND ".join(clauses), params

    def _select_columns(self) -> str:
        outer = self.outer_column or "NULL"
        return f"id, {outer}, {self.container_column}, rank_key"

    def _row(self, raw: Any) -> OrderedRow:
        return OrderedRow(
            id=str(raw[0]),
            outer_id=str(raw[1]) if raw[1] is not None else None,
            container_id=str(raw[2]) if raw[2] is not None else None,
            rank=str(raw[3]),
        )

    # -- reads -------------------------------------------------------------

    def load_item(self, conn: Connection, item_id: str, outer_id: Optional[str] = None) -> Optional[OrderedRow]:
        """Return the ordered row for ``item_id``, restricted to ``outer_id`` when scoped."""
        sql = f"SELECT {self._select_columns()} FROM {self.table} WHERE id = :id"
        params: Dict[str, Any] = {"id": item_id}
        if self.outer_column:
            sql += f" AND {self.outer_column} = :outer_id"
            params["outer_id"] = outer_id
        row = conn.execute(sql_text(sql), params).first()
        return self._row(row) if row else None

    def container_exists(self, conn: Connection, container: Container) -> bool:
        if container.container_id is None:
            return self.has_default_bucket
        sql = f"SELECT 1 FROM {self.container_table} WHERE id = :cid"
        params: Dict[str, Any] = {"cid": container.container_id}
        if self.container_outer_column:
            sql += f" AND {self.container_outer_column} = :outer_id"
            params["outer_id"] = container.outer_id
        return conn.execute(sql_text(sql), params).first() is not None

    def rank_in_container(self, conn: Connection, container: Container, item_id: str) -> Optional[str]:
        """Return the rank of ``item_id`` only if it lives in ``container``."""
        where, params = self._container_filter(container)
        params["id"] = item_id
        return conn.execute(
            sql_text(f"SELECT rank_key FROM {self.table} WHERE id = :id AND {where}"),
            params,
        ).scalar()

    def next_rank(self, conn: Connection, container: Container, rank: str, exclude_id: Optional[str] = None) -> Optional[str]:
        """Smallest rank strictly greater than ``rank`` in the container."""
        return self._neighbor_rank(conn, container, rank, exclude_id, op=">", agg="MIN")

    def prev_rank(self, conn: Connection, container: Container, rank: str, exclude_id: Optional[str] = None) -> Optional[str]:
        """Largest rank strictly less than ``rank`` in the container."""
        return self._neighbor_rank(conn, container, rank, exclude_id, op="<", agg="MAX")

    def _neighbor_rank(
        self,
        conn: Connection,
        container: Container,
        rank: str,
        exclude_id: Optional[str],
        *,
        op: str,
        agg: str,
    ) -> Optional[str]:
        where, params = self._container_filter(container)
        params["rank"] = rank
        sql = f"SELECT {agg}(rank_key) FROM {self.table} WHERE {where} AND rank_key {op} :rank"
        if exclude_id:
            sql += " AND id <> :exclude_id"
            params["exclude_id"] = exclude_id
        return conn.execute(sql_text(sql), params).scalar()

    def max_rank(self, conn: Connection, container: Container, exclude_id: Optional[str] = None) -> Optional[str]:
        where, params = self._container_filter(container)
        sql = f"SELECT MAX(rank_key) FROM {self.table} WHERE {where}"
        if exclude_id:
            sql += " AND id <> :exclude_id"
            params["exclude_id"] = exclude_id
        return conn.execute(sql_text(sql), params).scalar()

    # -- writes ------------------------------------------------------------

    def write_position(self, conn: Connection, item_id: str, container: Container, rank: str) -> None:
        """Set container and rank together in the caller's transaction."""
        conn.execute(
            sql_text(
                f"UPDATE {self.table} SET {self.container_column} = :container_id, rank_key = :rank WHERE id = :id"
            ),
            {"container_id": container.container_id, "rank": rank, "id": item_id},
        )


# A section's project is both its outer scope and its container
SECTIONS = OrderingScope(
    name="section",
    table="section",
    container_column="project_id",
    container_table="project",
    outer_column="project_id",
)

TASKS = OrderingScope(
    name="task",
    table="task",
    container_column="section_id",
    container_table="section",
    outer_column="project_id",
    container_outer_column="project_id",
    has_default_bucket=True,
)

SUBTASKS = OrderingScope(
    name="subtask",
    table="subtask",
    container_column="task_id",
    container_table="task",
)


__all__ = [
    "Container",
    "OrderedRow",
    "OrderingScope",
    "SECTIONS",
    "TASKS",
    "SUBTASKS",
]
