"""Functional tests for moves against a real database.

Covers neighbor resolution, no-op detection, container sentinels, collision
retry and the error kinds raised before any write.
"""

from __future__ import annotations

import dataclasses
import uuid

import pytest
from sqlalchemy import text as sql_text

from taskboard.logic import events
from taskboard.logic.errors import Conflict, InvalidIdentifier, NotFound
from taskboard.logic.move_coordinator import MoveCoordinator, MoveRequest, MoveTo, MoveToDefault, NoChange
from taskboard.logic.ordering_scopes import SECTIONS, SUBTASKS, TASKS, OrderingScope
from taskboard.logic.rank_codec import MAX, decode, encode


def _task_position(seed, task_id):
    return seed.position("task", task_id, "section_id")


# ---------------------------------------------------------------------------
# Neighbor resolution
# ---------------------------------------------------------------------------

def test_after_only_hint_is_bounded_by_the_real_next_item(seed) -> None:
    pid = seed.project()
    sid = seed.section(pid, 100)
    a = seed.task(pid, 10, sid, "A")
    seed.task(pid, 20, sid, "B")
    seed.task(pid, 30, sid, "C")
    d = seed.task(pid, 5, None, "D")

    result = MoveCoordinator(TASKS).move(d, MoveRequest(target=MoveTo(sid), after_id=a), outer_id=pid)

    assert result.changed
    assert result.row.container_id == sid
    assert 10 < decode(result.row.rank) < 20
    assert _task_position(seed, d) == (sid, encode(15))


def test_before_only_hint_is_bounded_by_the_real_previous_item(seed) -> None:
    pid = seed.project()
    sid = seed.section(pid, 100)
    seed.task(pid, 10, sid, "A")
    seed.task(pid, 20, sid, "B")
    c = seed.task(pid, 30, sid, "C")
    d = seed.task(pid, 5, None, "D")

    result = MoveCoordinator(TASKS).move(d, MoveRequest(target=MoveTo(sid), before_id=c), outer_id=pid)

    assert result.row.rank == encode(25)


def test_hint_outside_destination_is_treated_as_absent(seed) -> None:
    pid = seed.project()
    s1 = seed.section(pid, 100)
    s2 = seed.section(pid, 200)
    a = seed.task(pid, 10, s1, "A")
    b = seed.task(pid, 20, s1, "B")
    elsewhere = seed.task(pid, 15, s2, "X")
    d = seed.task(pid, 5, None, "D")

    result = MoveCoordinator(TASKS).move(
        d, MoveRequest(target=MoveTo(s1), after_id=elsewhere, before_id=b), outer_id=pid
    )

    assert result.row.rank == encode(15)
    assert decode(_task_position(seed, a)[1]) < decode(result.row.rank) < 20


def test_no_hints_appends_at_the_tail(seed) -> None:
    pid = seed.project()
    sid = seed.section(pid, 100)
    seed.task(pid, 10, sid)
    seed.task(pid, 30, sid)
    d = seed.task(pid, 5, None)

    result = MoveCoordinator(TASKS).move(d, MoveRequest(target=MoveTo(sid)), outer_id=pid)

    assert decode(result.row.rank) > 30


def test_move_into_empty_section_gets_first_rank(seed) -> None:
    pid = seed.project()
    sid = seed.section(pid, 100)
    d = seed.task(pid, 5, None)

    result = MoveCoordinator(TASKS).move(d, MoveRequest(target=MoveTo(sid)), outer_id=pid)

    assert result.row.rank == "8888888888888888"


def test_self_reference_hint_behaves_as_absent(seed) -> None:
    pid = seed.project()
    sid = seed.section(pid, 100)
    a = seed.task(pid, 10, sid)
    b = seed.task(pid, 20, sid)

    # B names itself as the item above, leaving no usable hint: tail
    result = MoveCoordinator(TASKS).move(b, MoveRequest(after_id=b.upper()), outer_id=pid)
    assert result.row.rank == encode((10 + MAX) // 2)

    # A names itself below, B above: lower=B, upper from B's successor
    result = MoveCoordinator(TASKS).move(a, MoveRequest(after_id=b, before_id=a), outer_id=pid)
    assert result.changed
    assert decode(result.row.rank) > decode(_task_position(seed, b)[1])


# ---------------------------------------------------------------------------
# Idempotence and events
# ---------------------------------------------------------------------------

def test_repeating_a_move_is_a_noop(seed, engine) -> None:
    pid = seed.project()
    sid = seed.section(pid, 100)
    a = seed.task(pid, 10, sid)
    seed.task(pid, 20, sid)
    d = seed.task(pid, 5, None)
    request = MoveRequest(target=MoveTo(sid), after_id=a)
    coordinator = MoveCoordinator(TASKS, engine=engine)

    first = coordinator.move(d, request, outer_id=pid)
    second = coordinator.move(d, request, outer_id=pid)

    assert first.changed
    assert not second.changed
    assert second.row.rank == first.row.rank
    moved = [e for e in events.get_buffered_events() if e["type"] == events.TASK_MOVED]
    assert len(moved) == 1
    assert moved[0]["payload"] == {"id": d, "container_id": sid, "rank": first.row.rank}


def test_tail_move_of_last_item_is_a_noop(seed) -> None:
    pid = seed.project()
    seed.task(pid, 10)
    last = seed.task(pid, 20)
    # Tail placement ignores the item itself, so the second call lands on the same key
    first = MoveCoordinator(TASKS).move(last, MoveRequest(), outer_id=pid)
    again = MoveCoordinator(TASKS).move(last, MoveRequest(), outer_id=pid)
    assert not again.changed
    assert again.row.rank == first.row.rank


# ---------------------------------------------------------------------------
# Container sentinels
# ---------------------------------------------------------------------------

def test_no_change_keeps_current_section(seed) -> None:
    pid = seed.project()
    sid = seed.section(pid, 100)
    a = seed.task(pid, 10, sid)
    b = seed.task(pid, 20, sid)

    result = MoveCoordinator(TASKS).move(b, MoveRequest(target=NoChange(), before_id=a), outer_id=pid)

    assert result.row.container_id == sid
    assert decode(result.row.rank) < 10


def test_move_to_default_unlocates_a_sectioned_task(seed) -> None:
    pid = seed.project()
    sid = seed.section(pid, 100)
    t = seed.task(pid, 10, sid)
    seed.task(pid, 50, None)

    result = MoveCoordinator(TASKS).move(t, MoveRequest(target=MoveToDefault()), outer_id=pid)

    assert _task_position(seed, t)[0] is None
    assert decode(result.row.rank) > 50


def test_sections_have_no_default_bucket(seed) -> None:
    pid = seed.project()
    sid = seed.section(pid, 100)
    with pytest.raises(NotFound):
        MoveCoordinator(SECTIONS).move(sid, MoveRequest(target=MoveToDefault()), outer_id=pid)


@pytest.mark.parametrize("same_project", [True, False])
def test_sections_cannot_move_to_another_project(seed, same_project: bool) -> None:
    pid = seed.project()
    other = pid if same_project else seed.project("Other")
    sid = seed.section(pid, 100)

    with pytest.raises(NotFound):
        MoveCoordinator(SECTIONS).move(sid, MoveRequest(target=MoveTo(other)), outer_id=pid)

    assert seed.position("section", sid, "project_id") == (pid, encode(100))
    assert events.get_buffered_events() == []


def test_section_reorder_within_project(seed) -> None:
    pid = seed.project()
    s1 = seed.section(pid, 100)
    s2 = seed.section(pid, 200)
    s3 = seed.section(pid, 300)

    result = MoveCoordinator(SECTIONS).move(s3, MoveRequest(after_id=s1, before_id=s2), outer_id=pid)

    assert result.row.container_id == pid
    assert result.row.rank == encode(150)
    assert [e["type"] for e in events.get_buffered_events()] == [events.SECTION_MOVED]


def test_subtask_moves_between_tasks(seed) -> None:
    pid = seed.project()
    t1 = seed.task(pid, 10)
    t2 = seed.task(pid, 20)
    st = seed.subtask(t1, 10)
    other = seed.subtask(t2, 40)

    result = MoveCoordinator(SUBTASKS).move(st, MoveRequest(target=MoveTo(t2), before_id=other))

    assert seed.position("subtask", st, "task_id") == (t2, encode(20))
    assert result.row.container_id == t2


# ---------------------------------------------------------------------------
# Errors before any write
# ---------------------------------------------------------------------------

def test_malformed_ids_raise_invalid_identifier(seed) -> None:
    pid = seed.project()
    t = seed.task(pid, 10)
    coordinator = MoveCoordinator(TASKS)
    with pytest.raises(InvalidIdentifier):
        coordinator.move("not-a-uuid", MoveRequest(), outer_id=pid)
    with pytest.raises(InvalidIdentifier):
        coordinator.move(t, MoveRequest(after_id="garbage"), outer_id=pid)
    with pytest.raises(InvalidIdentifier):
        coordinator.move(t, MoveRequest(target=MoveTo("section-xyz")), outer_id=pid)
    assert _task_position(seed, t) == (None, encode(10))


def test_missing_item_or_container_raise_not_found(seed) -> None:
    pid = seed.project()
    other_pid = seed.project("Other")
    foreign_section = seed.section(other_pid, 100)
    t = seed.task(pid, 10)
    coordinator = MoveCoordinator(TASKS)

    with pytest.raises(NotFound):
        coordinator.move(str(uuid.uuid4()), MoveRequest(), outer_id=pid)
    with pytest.raises(NotFound):
        coordinator.move(t, MoveRequest(), outer_id=other_pid)
    with pytest.raises(NotFound):
        coordinator.move(t, MoveRequest(target=MoveTo(foreign_section)), outer_id=pid)
    assert _task_position(seed, t) == (None, encode(10))
    assert events.get_buffered_events() == []


def test_prefixed_and_uppercase_ids_are_accepted(seed) -> None:
    pid = seed.project()
    sid = seed.section(pid, 100)
    t = seed.task(pid, 10)

    result = MoveCoordinator(TASKS).move(
        t.upper(), MoveRequest(target=MoveTo(f"section-{sid.upper()}")), outer_id=pid.upper()
    )

    assert result.row.container_id == sid


# ---------------------------------------------------------------------------
# Collision retry
# ---------------------------------------------------------------------------

def _racing(scope: OrderingScope, engine, rival_sql: str, rival_params: dict):
    """Scope whose first write is preceded by a competing committed write."""
    fired: list[str] = []

    class RacingScope(OrderingScope):
        def write_position(self, conn, item_id, container, rank):
            if not fired:
                fired.append(rank)
                with engine.begin() as rival:
                    rival.execute(sql_text(rival_sql), {**rival_params, "rank": rank})
            super().write_position(conn, item_id, container, rank)

    return RacingScope(**dataclasses.asdict(scope)), fired


def test_collision_with_concurrent_move_retries_with_fresh_neighbors(seed, engine) -> None:
    pid = seed.project()
    sid = seed.section(pid, 100)
    a = seed.task(pid, 1000, sid, "A")
    b = seed.task(pid, 2000, sid, "B")
    rival = seed.task(pid, 1, None, "X")
    d = seed.task(pid, 2, None, "D")
    scope, fired = _racing(
        TASKS,
        engine,
        "UPDATE task SET section_id = :sid, rank_key = :rank WHERE id = :id",
        {"sid": sid, "id": rival},
    )

    result = MoveCoordinator(scope, engine=engine).move(
        d, MoveRequest(target=MoveTo(sid), after_id=a), outer_id=pid
    )

    assert fired == [encode(1500)]
    assert result.attempts == 2
    assert _task_position(seed, rival) == (sid, encode(1500))
    assert _task_position(seed, d) == (sid, encode(1250))
    assert decode(_task_position(seed, a)[1]) < 1250 < 1500 < decode(_task_position(seed, b)[1])


def test_adjacent_keys_exhaust_retries_with_conflict(seed, engine) -> None:
    pid = seed.project()
    sid = seed.section(pid, 100)
    a = seed.task(pid, 10, sid)
    b = seed.task(pid, 11, sid)
    d = seed.task(pid, 5, None)

    with pytest.raises(Conflict) as exc:
        MoveCoordinator(TASKS, engine=engine, max_attempts=3).move(
            d, MoveRequest(target=MoveTo(sid), after_id=a, before_id=b), outer_id=pid
        )

    assert exc.value.status == 409
    assert _task_position(seed, d) == (None, encode(5))
    assert events.get_buffered_events() == []
