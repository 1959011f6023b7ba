"""Error kinds raised by the ordering engine and its repositories.

Each error carries the HTTP status and problem code the API layer maps it to;
the engine itself never builds responses.
"""

from __future__ import annotations


class OrderingError(Exception):
    """Base class for failures surfaced to callers of the ordering engine."""

    status: int = 500
    code: str = "ORDERING_ERROR"
    title: str = "Internal Server Error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def to_problem(self) -> dict:
        return {
            "title": self.title,
            "status": self.status,
            "detail": self.detail,
            "code": self.code,
        }


class InvalidIdentifier(OrderingError):
    """A request carried an id that is not a well-formed identifier."""

    status = 400
    code = "INVALID_IDENTIFIER"
    title = "Bad Request"


class InvalidPayload(OrderingError):
    """A request was well-formed but carried nothing usable (e.g. an empty patch)."""

    status = 400
    code = "INVALID_PAYLOAD"
    title = "Bad Request"


class NotFound(OrderingError):
    """The item or target container does not exist in the expected scope."""

    status = 404
    code = "NOT_FOUND"
    title = "Not Found"


class Conflict(OrderingError):
    """Rank collision persisted past the retry bound, or the destination vanished."""

    status = 409
    code = "RANK_CONFLICT"
    title = "Conflict"


class InvariantViolation(OrderingError):
    """Logged when a defensive branch is taken; not normally raised."""

    code = "RANK_INVARIANT_VIOLATION"


__all__ = [
    "OrderingError",
    "InvalidIdentifier",
    "InvalidPayload",
    "NotFound",
    "Conflict",
    "InvariantViolation",
]
