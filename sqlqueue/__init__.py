"""
sqlqueue — persistent FIFO queue stored as rows of a relational table.

Every element of a queue is a row (qkey, idx, value) in one shared table.
Several independent queues live side by side in that table, told apart by
their queue id (qkey). Indices are kept dense and zero-based per queue:
appends insert at the tail, removals delete from the head and shift the
remaining rows down, each inside a single transaction.

Quick start
-----------
    from sqlqueue import PersistentQueue

    q = PersistentQueue(url="sqlite:///queue.db", id="emails", cache=True)
    q.append("first", "second", "third", "fourth")
    q.remove()        # "first"
    q.remove(2)       # ["second", "third"]
    q.read_all()      # ["fourth"]
    q.clear()
    q.close()

Options
-------
  url / engine  — SQLAlchemy URL, or a live sqlalchemy.Engine
  id            — queue id (required)
  cache         — serve reads from a private in-memory mirror (default off)
  table         — table name (default "persistent_queue")
  max_size      — keep only the newest max_size values
  username, password, engine_options, codec

Architecture
------------
Follows the Ports & Adapters pattern:
  domain/        — QueueConfig and the exception hierarchy
  ports/         — Protocol interfaces (ValueCodec)
  core/          — queue engine (PersistentQueue), CacheMirror, codecs
  adapters/sql/  — SQLAlchemy table definition, SchemaManager, RowStore
"""
from __future__ import annotations

import logging

from sqlqueue.adapters.sql.rows import RowStore
from sqlqueue.adapters.sql.schema import SchemaManager, queue_table
from sqlqueue.core.cache import CacheMirror
from sqlqueue.core.codec import BytesCodec, JsonCodec
from sqlqueue.core.queue import PersistentQueue, connect
from sqlqueue.domain.config import DEFAULT_TABLE, QueueConfig
from sqlqueue.domain.errors import (
    ConfigError,
    SchemaError,
    SQLQueueError,
    StorageError,
)
from sqlqueue.ports.codec import ValueCodec

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Configuration
    "DEFAULT_TABLE",
    "QueueConfig",
    # Errors
    "SQLQueueError",
    "ConfigError",
    "SchemaError",
    "StorageError",
    # Port (for typing custom codecs)
    "ValueCodec",
    # High-level queue API
    "PersistentQueue",
    "connect",
    # Building blocks
    "CacheMirror",
    "JsonCodec",
    "BytesCodec",
    "RowStore",
    "SchemaManager",
    "queue_table",
]
