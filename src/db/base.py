"""SQLAlchemy base configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, sessionmaker, scoped_session, Session
from sqlalchemy.pool import StaticPool

from config.settings import DATABASE_URL


class Base(DeclarativeBase):
    """Base class for all ORM models."""


def _is_sqlite(database_url: str) -> bool:
    return make_url(database_url).get_backend_name() == "sqlite"


def _prepare_sqlite_path(database_url: str) -> None:
    if not _is_sqlite(database_url):
        return
    database = make_url(database_url).database
    if not database or database == ":memory:":
        return
    Path(database).parent.mkdir(parents=True, exist_ok=True)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_sqlalchemy_engine(database_url: str = DATABASE_URL) -> Engine:
    """Create SQLAlchemy engine with sensible defaults for SQLite."""
    _prepare_sqlite_path(database_url)
    engine_kwargs = {}
    connect_args = {}

    sqlite = _is_sqlite(database_url)
    if sqlite:
        connect_args["check_same_thread"] = False
        if database_url.endswith(":memory:") or database_url == "sqlite://":
            engine_kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, connect_args=connect_args, **engine_kwargs)
    if sqlite:
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


_ENGINES: dict[str, Engine] = {}
_SESSION_FACTORIES: dict[str, Callable[[], Session]] = {}


def get_engine(database_url: str = DATABASE_URL) -> Engine:
    engine = _ENGINES.get(database_url)
    if engine is None:
        engine = create_sqlalchemy_engine(database_url)
        _ENGINES[database_url] = engine
    return engine


def get_session_factory(database_url: str = DATABASE_URL):
    factory = _SESSION_FACTORIES.get(database_url)
    if factory is None:
        engine = get_engine(database_url)
        factory = scoped_session(
            sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
        )
        _SESSION_FACTORIES[database_url] = factory
    return factory


def create_schema(database_url: str = DATABASE_URL) -> None:
    """Create every table registered on ``Base``."""
    from src.db import models  # noqa: F401

    Base.metadata.create_all(bind=get_engine(database_url))
