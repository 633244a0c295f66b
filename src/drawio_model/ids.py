"""
Identifier allocation for diagram entities.

Identifiers are a fixed prefix plus a monotonically increasing counter.
The counter starts at 2 because ids ``0`` and ``1`` are the structural
root and default-layer cells of the mxGraphModel format.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, Optional

_TRAILING_NUMBER = re.compile(r"(\d+)$")


class IdAllocator:
    """Issue ``<prefix><n>`` identifiers that are never reissued until reset."""

    def __init__(self, prefix: str, start: int = 2) -> None:
        self.prefix = prefix
        self.start = start
        self._next = start

    @property
    def counter(self) -> int:
        return self._next

    def peek(self, offset: int = 0) -> str:
        """Return the id that ``next()`` would produce after *offset* calls."""
        return f"{self.prefix}{self._next + offset}"

    def next(self, is_taken: Optional[Callable[[str], bool]] = None) -> str:
        cid = f"{self.prefix}{self._next}"
        self._next += 1
        # Imported documents may already use ids of our own shape.
        while is_taken is not None and is_taken(cid):
            cid = f"{self.prefix}{self._next}"
            self._next += 1
        return cid

    def skip(self, count: int) -> None:
        """Consume *count* ids without returning them."""
        self._next += max(count, 0)

    def advance_past(self, ids: Iterable[str]) -> None:
        """Move the counter beyond the largest numeric suffix in *ids*."""
        highest = max((numeric_suffix(i) for i in ids), default=-1)
        if highest >= self._next:
            self._next = highest + 1

    def reset(self) -> None:
        self._next = self.start


def numeric_suffix(identifier: str) -> int:
    """Trailing integer of *identifier* (``cell-12`` → 12), or -1."""
    m = _TRAILING_NUMBER.search(identifier or "")
    return int(m.group(1)) if m else -1
