"""
QueueConfig — construction options for PersistentQueue, backed by Pydantic v2.

Pydantic handles:
  - type coercion and validation of every option
  - rejection of unknown options (extra="forbid")
  - masking the password in repr() via SecretStr

The model is frozen. Build it directly, or through from_options() which
turns validation failures into ConfigError:

    QueueConfig.from_options(url="sqlite:///queue.db", id="jobs", cache=True)

Connection source
-----------------
Exactly one of:
  url    — SQLAlchemy URL / DSN, e.g. "postgresql+psycopg://host/db"; the
           engine is created (and later disposed) by the queue
  engine — a live sqlalchemy.Engine owned by the caller
"""

from __future__ import annotations

from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)
from sqlalchemy import Engine

from sqlqueue.core.codec import JsonCodec
from sqlqueue.domain.errors import ConfigError
from sqlqueue.ports.codec import ValueCodec

DEFAULT_TABLE = "persistent_queue"


class QueueConfig(BaseModel):
    """
    Everything a PersistentQueue needs to know at construction time.

    url            — SQLAlchemy URL (DSN form of the connection)
    engine         — live SQLAlchemy Engine (handle form of the connection)
    queue_id       — value of the qkey column; also accepted as `id`
    cache          — keep a private in-memory mirror of the queue
    table          — name of the shared queue table
    max_size       — evict the oldest values beyond this length
    username       — overrides the user in `url`
    password       — overrides the password in `url`
    engine_options — extra keyword arguments for sqlalchemy.create_engine
    codec          — converts values to/from the stored bytes
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    url: str | None = None
    engine: Engine | None = None
    queue_id: str | None = Field(
        default=None,
        max_length=255,
        validation_alias=AliasChoices("queue_id", "id"),
    )
    cache: bool = False
    table: str = DEFAULT_TABLE
    max_size: int | None = None
    username: str | None = None
    password: SecretStr | None = None
    engine_options: dict[str, Any] = Field(default_factory=dict)
    codec: ValueCodec = Field(default_factory=JsonCodec)

    @field_validator("max_size")
    @classmethod
    def _check_max_size(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError(f"max_size must be a positive integer, got {v}")
        return v

    @field_validator("table")
    @classmethod
    def _check_table(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("table name must not be empty")
        return v

    @model_validator(mode="after")
    def _check_required(self) -> "QueueConfig":
        if not self.queue_id:
            raise ValueError("no queue id defined")
        if self.url is None and self.engine is None:
            raise ValueError("no connection url or engine given")
        if self.url is not None and self.engine is not None:
            raise ValueError("pass either a connection url or an engine, not both")
        return self

    @classmethod
    def from_options(cls, **options: Any) -> "QueueConfig":
        """Validate keyword options. Raises ConfigError instead of ValidationError."""
        try:
            return cls(**options)
        except ValidationError as exc:
            raise ConfigError(_describe(exc)) from exc

    @property
    def owns_engine(self) -> bool:
        """True when the queue builds its engine from `url` and must dispose it."""
        return self.engine is None


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)
