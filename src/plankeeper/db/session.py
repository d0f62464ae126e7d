"""Engine and session factory for the challenge and account tables."""

from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from plankeeper.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base for ``User`` and ``AuthChallenge``."""


# Register the mapped tables on Base.metadata before anyone calls create_all.
import plankeeper.models  # noqa: E402,F401


def build_engine(url: str, **kwargs: Any) -> Engine:
    """Create an engine for ``url``.

    SQLite connections are shared between the request threadpool and the
    purge worker, so the same-thread check is turned off for them.
    """
    if url.startswith("sqlite"):
        connect_args = dict(kwargs.pop("connect_args", {}))
        connect_args.setdefault("check_same_thread", False)
        kwargs["connect_args"] = connect_args
    kwargs.setdefault("echo", settings.sql_debug)
    return create_engine(url, pool_pre_ping=True, **kwargs)


engine = build_engine(settings.effective_database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for work running outside a request, such as the purge worker."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind: Engine | None = None) -> None:
    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind: Engine | None = None) -> None:
    Base.metadata.drop_all(bind=bind or engine)
