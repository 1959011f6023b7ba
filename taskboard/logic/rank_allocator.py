"""Rank allocation between two boundary keys.

Computes a new rank key strictly between a lower and an upper boundary, or at
either end of a container when one boundary is missing. Boundaries are plain
integers (decoded rank keys); results are encoded keys.

Precision is finite: when ``lower`` and ``upper`` are adjacent integers the
allocator returns ``lower + 1`` which equals ``upper``. No rebalancing pass
exists; the unique index on (container, rank) rejects the write and the
caller's bounded retry surfaces a conflict.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from taskboard.logic.errors import Conflict, InvariantViolation
from taskboard.logic.rank_codec import MAX, WIDTH, decode, encode

logger = logging.getLogger(__name__)

# Key given to the first item of an empty container
FIRST_RANK = "8" * WIDTH


def _midpoint(lower: int, upper: int) -> str:
    if lower >= upper:
        violation = InvariantViolation(
            f"lower boundary {lower} is not below upper boundary {upper}"
        )
        logger.warning(
            "rank.between.invariant_violation code=%s lower=%s upper=%s",
            violation.code,
            lower,
            upper,
        )
        return encode((lower + MAX) // 2)
    m = (lower + upper) // 2
    if m == lower or m == upper:
        return encode(lower + 1)
    return encode(m)


def between(lower: Optional[int], upper: Optional[int]) -> str:
    """Return a rank key between ``lower`` and ``upper``.

    - neither bound: FIRST_RANK
    - only upper: halfway from zero to upper
    - only lower: halfway from lower to MAX
    - both: integer midpoint, or ``lower + 1`` when no slack remains
    """
    if lower is None and upper is None:
        return FIRST_RANK
    if lower is None:
        return encode(upper // 2)
    if upper is None:
        return encode((lower + MAX) // 2)
    return _midpoint(lower, upper)


def after(lower: Optional[int]) -> str:
    return between(lower, None)


def between_keys(lower_key: Optional[str], upper_key: Optional[str]) -> str:
    """String-key variant of :func:`between`; empty keys count as absent."""
    lower = decode(lower_key) if lower_key else None
    upper = decode(upper_key) if upper_key else None
    return between(lower, upper)


def after_key(lower_key: Optional[str]) -> str:
    return between_keys(lower_key, None)


def spread_after(lower_key: Optional[str], count: int) -> List[str]:
    """Return ``count`` ascending keys evenly spaced above ``lower_key``.

    With no lower key the first one is FIRST_RANK. While room is left,
    ``spread_after(k, 1)`` equals ``after_key(k)``. Raises Conflict when the gap
    up to MAX cannot hold ``count`` distinct keys.
    """
    if count <= 0:
        return []
    if not lower_key:
        return [FIRST_RANK] + spread_after(FIRST_RANK, count - 1)
    lower = decode(lower_key)
    step = (MAX - lower) // (count + 1)
    if step == 0:
        logger.warning("rank.spread_after.exhausted lower=%s count=%s", lower, count)
        raise Conflict(f"No room for {count} keys after {lower_key}")
    return [encode(lower + step * i) for i in range(1, count + 1)]


__all__ = ["FIRST_RANK", "between", "after", "between_keys", "after_key", "spread_after"]
