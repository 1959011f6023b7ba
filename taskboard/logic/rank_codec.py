"""Fixed-width decimal rank keys.

A rank key is a zero-padded 16-digit decimal string. Zero padding makes the
lexicographic order of keys equal to their numeric order, so the database can
sort on the text column directly while the allocator works on Python ints.
"""

from __future__ import annotations

from typing import Optional

WIDTH = 16
MAX = 10**WIDTH - 1


def encode(n: int) -> str:
    """Return ``n`` zero-padded to WIDTH digits.

    Values wider than WIDTH keep their least-significant WIDTH digits.
    """
    s = str(int(n))
    if len(s) >= WIDTH:
        return s[-WIDTH:]
    return s.zfill(WIDTH)


def decode(s: Optional[str]) -> int:
    """Return the integer value of a rank key; empty or None decodes to 0."""
    if not s:
        return 0
    return int(s)


__all__ = ["WIDTH", "MAX", "encode", "decode"]
