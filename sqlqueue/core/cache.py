"""
CacheMirror — private in-memory copy of one queue's values.

When caching is enabled a PersistentQueue serves every read from its mirror
and updates the mirror after each committed write. The mirror is a snapshot:
writes made through other instances (or other processes) are not seen until
the owning queue calls reload(). It is not thread-safe and is never shared.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from itertools import islice
from typing import Any


class CacheMirror:
    """Ordered buffer, oldest value first."""

    def __init__(self, values: Iterable[Any] = ()) -> None:
        self._values: deque[Any] = deque(values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"CacheMirror(len={len(self._values)})"

    def replace(self, values: Iterable[Any]) -> None:
        """Discard the current contents and take `values` as the new snapshot."""
        self._values = deque(values)

    def extend(self, values: Iterable[Any]) -> None:
        self._values.extend(values)

    def pop_front(self, count: int) -> list[Any]:
        """Remove and return up to `count` values from the front."""
        count = min(count, len(self._values))
        return [self._values.popleft() for _ in range(count)]

    def slice(self, offset: int, count: int | None = None) -> list[Any]:
        stop = None if count is None else offset + count
        return list(islice(self._values, offset, stop))

    def snapshot(self) -> list[Any]:
        return list(self._values)

    def clear(self) -> None:
        self._values.clear()
