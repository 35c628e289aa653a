"""Database engine and session configuration."""

from __future__ import annotations

from typing import Any

from sqlalchemy import DDL, create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import rolling_paper.models  # noqa: E402,F401


def build_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create an engine for ``database_url``.

    In-memory SQLite databases share one connection so that every session
    sees the same tables.
    """
    url = make_url(database_url)
    kwargs: dict[str, Any] = {"echo": echo}
    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return create_engine(url, **kwargs)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory bound to ``engine``."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(bind: Engine, *, notify_channel: str = "messages_changed") -> None:
    """Create all database tables.

    On PostgreSQL this also installs the trigger announcing row changes on
    ``notify_channel``.
    """
    from rolling_paper.models.message import notify_trigger_sql

    Base.metadata.create_all(bind=bind)
    if bind.dialect.name == "postgresql":
        with bind.begin() as connection:
            connection.execute(DDL(notify_trigger_sql(notify_channel)))


def drop_tables(bind: Engine) -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=bind)
