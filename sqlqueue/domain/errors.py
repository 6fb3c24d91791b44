"""
Exception hierarchy for sqlqueue.

SQLQueueError
├── ConfigError    — missing or invalid construction option
├── SchemaError    — table existence check or CREATE TABLE failed (wraps cause)
└── StorageError   — a statement or transaction failed (wraps cause)

Reading or removing from an empty or short queue is not an error: those
calls return fewer (or no) values instead.
"""

from __future__ import annotations


class SQLQueueError(Exception):
    """Base class for all sqlqueue exceptions."""


class ConfigError(SQLQueueError):
    """Raised when a PersistentQueue cannot be built from the given options."""


class _WrappedError(SQLQueueError):
    def __init__(self, message: str, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"{message}: {cause}")


class SchemaError(_WrappedError):
    """
    The queue table could not be inspected or created.

    Attributes
    ----------
    cause : Exception
        The original exception from the database driver / SQLAlchemy.
    """


class StorageError(_WrappedError):
    """
    Wraps a backend failure while reading or writing queue rows.

    The enclosing transaction has been rolled back by the time this is raised.

    Attributes
    ----------
    cause : Exception
        The original exception from the database driver / SQLAlchemy.
    """
