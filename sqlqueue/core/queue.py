"""
PersistentQueue — FIFO queue persisted as rows of a relational table.

Every element is one row (qkey, idx, value). For a queue of length n the
rows of its qkey carry exactly the indices 0..n-1, oldest first:

  append(*values) — insert at n, n+1, ... in one transaction; when max_size
                    is set the oldest overflow is evicted in that same
                    transaction
  remove(count)   — read idx < count, delete them and shift the rest down
                    by count, all in one transaction

Every mutating call is a single transaction. A failure rolls back the whole
call and surfaces as StorageError; there is no retry.

Caching
-------
With cache=True the queue loads its rows once at construction and then
serves read_all(), read_range() and length() from a private CacheMirror,
updated after each committed write. Writes made by other instances are not
visible until reload(). Disable caching when several instances share a
queue id and need to see each other's writes.

Usage
-----
    from sqlqueue import PersistentQueue

    with PersistentQueue(url="sqlite:///queue.db", id="emails", cache=True) as q:
        q.append("first", "second", "third")
        q.remove()        # "first"
        q.remove(2)       # ["second", "third"]
        q.clear()
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any

from sqlqueue.adapters.sql.engine import resolve_engine
from sqlqueue.adapters.sql.rows import RowStore
from sqlqueue.adapters.sql.schema import SchemaManager, queue_table
from sqlqueue.core.cache import CacheMirror
from sqlqueue.domain.config import QueueConfig
from sqlqueue.domain.errors import ConfigError, StorageError

logger = logging.getLogger(__name__)


class PersistentQueue:
    """
    Queue engine for one queue id in a shared table.

    Build from a QueueConfig, or from keyword options which are validated
    through QueueConfig.from_options (ConfigError on bad input):

        PersistentQueue(QueueConfig(url="sqlite://", queue_id="q"))
        PersistentQueue(url="sqlite://", id="q", max_size=100)

    Not thread-safe; one instance per thread of control.
    """

    def __init__(self, config: QueueConfig | None = None, /, **options: Any) -> None:
        if config is None:
            config = QueueConfig.from_options(**options)
        elif options:
            raise ConfigError("pass either a QueueConfig or keyword options, not both")

        self._config = config
        self._queue_id: str = config.queue_id  # type: ignore[assignment]
        self._codec = config.codec
        self._engine = resolve_engine(config)
        self._closed = False

        table = queue_table(config.table)
        self._schema = SchemaManager(self._engine, table)
        self._store = RowStore(self._engine, table)
        self._cache: CacheMirror | None = CacheMirror() if config.cache else None

        try:
            self._schema.ensure_schema()
            self.reload()
        except Exception:
            self.close()
            raise

    def __repr__(self) -> str:
        return (
            f"PersistentQueue(id={self._queue_id!r}, table={self._config.table!r}, "
            f"cache={self.caching})"
        )

    def __len__(self) -> int:
        return self.length()

    def __enter__(self) -> "PersistentQueue":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Properties                                                          #
    # ------------------------------------------------------------------ #

    @property
    def queue_id(self) -> str:
        return self._queue_id

    @property
    def table_name(self) -> str:
        return self._config.table

    @property
    def caching(self) -> bool:
        return self._cache is not None

    @property
    def max_size(self) -> int | None:
        return self._config.max_size

    # ------------------------------------------------------------------ #
    # Write operations                                                    #
    # ------------------------------------------------------------------ #

    def append(self, *values: Any) -> None:
        """
        Add values to the tail of the queue, in the order given.

        When max_size is configured and the queue grows beyond it, the
        oldest values are evicted so that only the newest max_size remain.
        """
        if not values:
            return
        encoded = [self._codec.encode(v) for v in values]

        with self._store.transaction() as conn:
            start = (
                len(self._cache)
                if self._cache is not None
                else self._store.count_rows(conn, self._queue_id)
            )
            self._store.insert_batch(conn, self._queue_id, start, encoded)
            overflow = self._overflow(start + len(encoded))
            if overflow:
                self._store.delete_below(conn, self._queue_id, overflow)
                self._store.shift_indices(conn, self._queue_id, overflow)

        if self._cache is not None:
            self._cache.extend(self._codec.decode(data) for data in encoded)
            if overflow:
                self._cache.pop_front(overflow)

        logger.debug(
            "Appended %d value(s) to %r at idx %d (evicted %d)",
            len(encoded),
            self._queue_id,
            start,
            overflow,
        )

    def remove(self, count: int | None = None) -> Any:
        """
        Take values from the head of the queue.

        remove()      — the oldest value, or None if the queue is empty
        remove(count) — list of up to `count` oldest values (may be empty)
        """
        n = 1 if count is None else _positive("count", count)

        with self._store.transaction() as conn:
            rows = self._store.read_range(conn, self._queue_id, 0, n)
            self._store.delete_below(conn, self._queue_id, n)
            self._store.shift_indices(conn, self._queue_id, n)
            values = self._decode(rows)

        if self._cache is not None:
            self._cache.pop_front(len(values))

        logger.debug(
            "Removed %d of %d requested value(s) from %r",
            len(values),
            n,
            self._queue_id,
        )
        if count is None:
            return values[0] if values else None
        return values

    def clear(self) -> None:
        """Delete every value of this queue. Idempotent."""
        with self._store.transaction() as conn:
            deleted = self._store.delete_all(conn, self._queue_id)
        if self._cache is not None:
            self._cache.clear()
        logger.debug("Cleared %r (%d row(s))", self._queue_id, deleted)

    # ------------------------------------------------------------------ #
    # Read operations                                                     #
    # ------------------------------------------------------------------ #

    def read_all(self) -> list[Any]:
        """Every value, oldest first. Does not modify the queue."""
        if self._cache is not None:
            return self._cache.snapshot()
        return self._load()

    def read_range(self, offset: int, count: int | None = None) -> Any:
        """
        Values starting at position `offset` (0 = oldest), without removing them.

        With count omitted or 1, returns the single value or None when
        `offset` is past the end; otherwise a list of up to `count` values.
        """
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")
        n = 1 if count is None else _positive("count", count)

        if self._cache is not None:
            values = self._cache.slice(offset, n)
        else:
            with self._store.connection() as conn:
                rows = self._store.read_range(conn, self._queue_id, offset, n)
            values = self._decode(rows)

        if n == 1:
            return values[0] if values else None
        return values

    def length(self) -> int:
        """Number of values in the queue."""
        if self._cache is not None:
            return len(self._cache)
        with self._store.connection() as conn:
            return self._store.count_rows(conn, self._queue_id)

    def table_exists(self) -> bool:
        """True if the backing table is present."""
        return self._schema.table_exists()

    # ------------------------------------------------------------------ #
    # Lifecycle                                                           #
    # ------------------------------------------------------------------ #

    def reload(self) -> None:
        """Refresh the cache mirror from the table. No-op without caching."""
        if self._cache is None:
            return
        self._cache.replace(self._load())
        logger.debug(
            "Loaded %d value(s) of %r into cache", len(self._cache), self._queue_id
        )

    def close(self) -> None:
        """Dispose the engine if this queue created it. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._config.owns_engine:
            self._engine.dispose()

    # ------------------------------------------------------------------ #
    # Internal                                                            #
    # ------------------------------------------------------------------ #

    def _load(self) -> list[Any]:
        with self._store.connection() as conn:
            rows = self._store.read_range(conn, self._queue_id)
        return self._decode(rows)

    def _decode(self, rows: list[bytes]) -> list[Any]:
        try:
            return [self._codec.decode(data) for data in rows]
        except (ValueError, TypeError) as exc:
            raise StorageError(
                f"undecodable value in queue {self._queue_id!r}", exc
            ) from exc

    def _overflow(self, new_length: int) -> int:
        max_size = self._config.max_size
        if max_size is None or new_length <= max_size:
            return 0
        return new_length - max_size


def _positive(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 1:
        raise ValueError(f"{name} must be a positive integer, got {value}")
    return value


def connect(url: str | None = None, **options: Any) -> PersistentQueue:
    """Shorthand for PersistentQueue(url=url, **options)."""
    if url is not None:
        options["url"] = url
    return PersistentQueue(**options)
