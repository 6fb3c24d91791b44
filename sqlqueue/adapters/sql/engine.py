"""
Engine factory — turns the DSN form of a QueueConfig into a SQLAlchemy Engine.

Any SQLAlchemy URL works; the matching DB-API driver must be installed
separately (SQLite needs nothing extra):

    sqlite:///queue.db
    postgresql+psycopg://db.example.com/app
    mysql+pymysql://db.example.com/app

`username` / `password` from the config replace whatever the URL carries,
so credentials can be kept out of connection strings.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from sqlqueue.domain.config import QueueConfig
from sqlqueue.domain.errors import ConfigError

logger = logging.getLogger(__name__)


def build_url(config: QueueConfig) -> URL:
    """Parse `config.url` and apply the configured credentials."""
    if config.url is None:
        raise ConfigError("no connection url given")
    try:
        url = make_url(config.url)
    except ArgumentError as exc:
        raise ConfigError(f"invalid connection url: {exc}") from exc
    if config.username is not None:
        url = url.set(username=config.username)
    if config.password is not None:
        url = url.set(password=config.password.get_secret_value())
    return url


def resolve_engine(config: QueueConfig) -> Engine:
    """Return the caller's engine, or create one from the URL."""
    if config.engine is not None:
        return config.engine
    url = build_url(config)
    try:
        engine = create_engine(url, **config.engine_options)
    except (ArgumentError, TypeError) as exc:
        raise ConfigError(f"cannot create engine for {url!r}: {exc}") from exc
    logger.debug("Created engine for %s", url.render_as_string(hide_password=True))
    return engine
