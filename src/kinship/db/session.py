"""Engine, session factory and request-scoped session dependency."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from kinship.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base for profiles, posts and the edge tables."""


# Model modules register their tables on Base.metadata.
import kinship.models  # noqa: E402,F401


def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    # SQLite ignores ON DELETE CASCADE unless this is set per connection.
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def build_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine for ``url``.

    SQLite engines may be shared across threads by the test client and
    uvicorn's threadpool, and get foreign key enforcement switched on.
    """
    if url.startswith("sqlite"):
        sqlite_engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
        event.listen(sqlite_engine, "connect", _enable_foreign_keys)
        return sqlite_engine
    return create_engine(url, pool_pre_ping=True, echo=echo)


engine = build_engine(settings.effective_database_url, echo=settings.sql_debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield one session per request and close it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    Base.metadata.create_all(bind=engine)
