"""
RowStore — SQLAlchemy Core statements over the shared queue table.

Every statement is filtered by `qkey`; nothing here ever touches another
queue's rows. Statements run on a Connection handed out by one of two
context managers:

  transaction() — engine.begin(): commit on normal exit, rollback on every
                  exceptional exit
  connection()  — engine.connect() for read-only work

Both translate SQLAlchemyError into StorageError (original chained as
__cause__ and kept on .cause).

Remove-and-reindex
------------------
delete_below(n) followed by shift_indices(n) inside one transaction keeps
the indices of a queue dense:

    before: 0 1 2 3 4        delete_below(2): 2 3 4
    shift_indices(2):  0 1 2

On SQLite and MySQL/MariaDB the shift is a single UPDATE: both walk the
(qkey, idx) index in ascending order, so each target slot is already free.
Other dialects (PostgreSQL checks a non-deferrable primary key row by row,
in no particular order) take two steps that never overlap existing keys:

    idx = by - idx - 1        2 3 4  ->  -1 -2 -3
    idx = -idx - 1            -1 -2 -3  ->  0 1 2
"""

from __future__ import annotations

import contextlib
import dataclasses
import logging
from collections.abc import Iterator, Sequence

from sqlalchemy import Connection, Engine, Table, delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from sqlqueue.domain.errors import StorageError

logger = logging.getLogger(__name__)

_ORDERED_UPDATE_DIALECTS = frozenset({"sqlite", "mysql", "mariadb"})


@dataclasses.dataclass
class RowStore:
    """
    Parameterized row operations for one queue table.

    Parameters
    ----------
    engine : SQLAlchemy engine the table lives in
    table  : Table built by queue_table()
    single_update_shift : shift indices with one UPDATE; None picks it from
                          the dialect
    """

    engine: Engine
    table: Table
    single_update_shift: bool | None = None

    def __post_init__(self) -> None:
        if self.single_update_shift is None:
            self.single_update_shift = (
                self.engine.dialect.name in _ORDERED_UPDATE_DIALECTS
            )

    # ------------------------------------------------------------------ #
    # Scopes                                                              #
    # ------------------------------------------------------------------ #

    @contextlib.contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Atomic unit of work. Rolled back on any exception."""
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            logger.debug("Transaction on %r rolled back: %s", self.table.name, exc)
            raise StorageError(f"transaction on {self.table.name!r} failed", exc) from exc

    @contextlib.contextmanager
    def connection(self) -> Iterator[Connection]:
        """Read-only scope."""
        try:
            with self.engine.connect() as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise StorageError(f"read from {self.table.name!r} failed", exc) from exc

    # ------------------------------------------------------------------ #
    # Reads                                                               #
    # ------------------------------------------------------------------ #

    def read_range(
        self,
        conn: Connection,
        queue_id: str,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[bytes]:
        """Values with offset <= idx < offset + limit, oldest first."""
        c = self.table.c
        stmt = (
            select(c.value)
            .where(c.qkey == queue_id, c.idx >= offset)
            .order_by(c.idx)
        )
        if limit is not None:
            stmt = stmt.where(c.idx < offset + limit)
        return [row.value for row in conn.execute(stmt)]

    def count_rows(self, conn: Connection, queue_id: str) -> int:
        """Queue length derived from the highest index (max(idx) + 1), 0 if empty."""
        c = self.table.c
        highest = conn.execute(
            select(func.max(c.idx)).where(c.qkey == queue_id)
        ).scalar()
        return 0 if highest is None else int(highest) + 1

    # ------------------------------------------------------------------ #
    # Writes (call inside transaction())                                  #
    # ------------------------------------------------------------------ #

    def insert_batch(
        self,
        conn: Connection,
        queue_id: str,
        start_index: int,
        values: Sequence[bytes],
    ) -> None:
        """Insert one row per value at start_index, start_index + 1, ..."""
        if not values:
            return
        rows = [
            {"qkey": queue_id, "idx": start_index + i, "value": value}
            for i, value in enumerate(values)
        ]
        conn.execute(self.table.insert(), rows)
        logger.debug(
            "Inserted %d row(s) into %r at idx %d..%d",
            len(rows),
            queue_id,
            start_index,
            start_index + len(rows) - 1,
        )

    def delete_below(self, conn: Connection, queue_id: str, threshold: int) -> int:
        """Delete rows with idx < threshold. Returns the number deleted."""
        c = self.table.c
        result = conn.execute(
            delete(self.table).where(c.qkey == queue_id, c.idx < threshold)
        )
        return result.rowcount

    def shift_indices(self, conn: Connection, queue_id: str, by: int) -> None:
        """Move every remaining row of the queue `by` positions towards the front."""
        if by <= 0:
            return
        c = self.table.c
        if self.single_update_shift:
            conn.execute(
                update(self.table).where(c.qkey == queue_id).values(idx=c.idx - by)
            )
            return
        conn.execute(
            update(self.table).where(c.qkey == queue_id).values(idx=by - c.idx - 1)
        )
        conn.execute(
            update(self.table)
            .where(c.qkey == queue_id, c.idx < 0)
            .values(idx=-c.idx - 1)
        )

    def delete_all(self, conn: Connection, queue_id: str) -> int:
        """Delete every row of the queue. Returns the number deleted."""
        result = conn.execute(delete(self.table).where(self.table.c.qkey == queue_id))
        return result.rowcount
