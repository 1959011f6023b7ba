"""Domain event constants and publisher.

Defines event type constants and a simple publish() callable used by the
create, update, delete and move flows. No-op moves never publish.
"""

from __future__ import annotations

from typing import Any, Dict, List
import logging

logger = logging.getLogger(__name__)

SECTION_CREATED = "section.created"
SECTION_MOVED = "section.moved"
TASK_CREATED = "task.created"
TASK_MOVED = "task.moved"
SUBTASK_CREATED = "subtask.created"
SUBTASK_MOVED = "subtask.moved"
SECTION_DELETED = "section.deleted"
TASK_UPDATED = "task.updated"
SUBTASK_UPDATED = "subtask.updated"
SUBTASK_DELETED = "subtask.deleted"

MOVED_EVENTS = {
    "section": SECTION_MOVED,
    "task": TASK_MOVED,
    "subtask": SUBTASK_MOVED,
}


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    """Publish a domain event.

    In this minimal implementation, we log the event for observability.
    """
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    # Buffer events in-memory for test observation
    EVENT_BUFFER.append({"type": event_type, "payload": payload})


# In-memory buffer for domain events (test-only visibility)
EVENT_BUFFER: List[Dict[str, Any]] = []


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Return buffered domain events; optionally clear the buffer."""
    events = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return events

__all__ = [
    "SECTION_CREATED",
    "SECTION_MOVED",
    "TASK_CREATED",
    "TASK_MOVED",
    "SUBTASK_CREATED",
    "SUBTASK_MOVED",
    "SECTION_DELETED",
    "TASK_UPDATED",
    "SUBTASK_UPDATED",
    "SUBTASK_DELETED",
    "MOVED_EVENTS",
    "publish",
    "get_buffered_events",
    "EVENT_BUFFER",
]
