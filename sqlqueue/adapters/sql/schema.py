"""
Queue table definition and SchemaManager.

All queues share one table, partitioned by `qkey`:

    CREATE TABLE persistent_queue (
        qkey  VARCHAR(255) NOT NULL,
        idx   INTEGER UNSIGNED NOT NULL,   -- plain INTEGER outside MySQL
        value BLOB,
        PRIMARY KEY (qkey, idx)
    )

The table name is quoted by SQLAlchemy according to the dialect's identifier
rules, so mixed-case or reserved names work on every backend.
"""

from __future__ import annotations

import dataclasses
import logging

from sqlalchemy import (
    Column,
    Engine,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    inspect,
)
from sqlalchemy.dialects import mysql
from sqlalchemy.exc import SQLAlchemyError

from sqlqueue.domain.errors import SchemaError

logger = logging.getLogger(__name__)

_IDX_TYPE = Integer().with_variant(mysql.INTEGER(unsigned=True), "mysql", "mariadb")


def queue_table(name: str, metadata: MetaData | None = None) -> Table:
    """Build the Table object for a queue table called `name`."""
    return Table(
        name,
        metadata if metadata is not None else MetaData(),
        Column("qkey", String(255), primary_key=True, nullable=False),
        Column(
            "idx",
            _IDX_TYPE,
            primary_key=True,
            nullable=False,
            autoincrement=False,
        ),
        Column("value", LargeBinary),
    )


@dataclasses.dataclass
class SchemaManager:
    """
    Verifies and creates the queue table.

    Parameters
    ----------
    engine : SQLAlchemy engine the table lives in
    table  : Table built by queue_table()
    """

    engine: Engine
    table: Table

    def table_exists(self) -> bool:
        """True if the queue table is present. Raises SchemaError on failure."""
        try:
            with self.engine.connect() as conn:
                return inspect(conn).has_table(self.table.name)
        except SQLAlchemyError as exc:
            raise SchemaError(
                f"could not check for table {self.table.name!r}", exc
            ) from exc

    def ensure_schema(self) -> None:
        """Create the queue table unless it already exists. Idempotent."""
        if self.table_exists():
            return
        try:
            with self.engine.begin() as conn:
                self.table.create(conn)
        except SQLAlchemyError as exc:
            # Another instance may have created it between check and create.
            if self.table_exists():
                return
            raise SchemaError(
                f"could not create table {self.table.name!r}", exc
            ) from exc
        logger.info("Created queue table %r", self.table.name)
