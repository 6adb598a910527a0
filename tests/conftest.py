# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator, Mapping
from dataclasses import dataclass, field
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")

from kinship.core.security import create_access_token
from kinship.db.session import Base
from kinship.db.session import get_db as app_get_session
from kinship.main import app as fastapi_app
from kinship.models import Post, User
from kinship.repositories.edge_store import EdgeStore
from kinship.services import EngagementSynchronizer, FeedComposer, RelationshipEngine
from kinship.services.errors import StoreUnavailable

TEST_DB_URL = "sqlite://"

_USERNAME_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    # The store commits every statement, so isolation comes from wiping tables.
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@dataclass
class _Rule:
    action: str
    model: type
    match: dict[str, Any]
    times: int
    callback: Callable[[], Any] | None = None
    hits: int = field(default=0)


def _matches(rule: _Rule, action: str, model: type, values: Mapping[str, Any]) -> bool:
    if rule.action != action or rule.model is not model or rule.hits >= rule.times:
        return False
    for key, expected in rule.match.items():
        actual = values.get(key)
        if getattr(actual, "value", actual) != getattr(expected, "value", expected):
            return False
    return True


class FlakyStore(EdgeStore):
    """Edge store that can fail or run a callback before selected statements.

    ``fail_on`` makes the next matching call raise :class:`StoreUnavailable`
    without touching the database. ``before`` runs a callback once, just
    before a matching call executes, to interleave another actor.
    """

    def __init__(self, session: Session) -> None:
        super().__init__(session)
        self._failures: list[_Rule] = []
        self._hooks: list[_Rule] = []

    def fail_on(self, action: str, model: type, *, times: int = 1, **match: Any) -> None:
        self._failures.append(_Rule(action, model, match, times))

    def before(self, action: str, model: type, callback: Callable[[], Any], **match: Any) -> None:
        self._hooks.append(_Rule(action, model, match, 1, callback))

    def _check(self, action: str, model: type, values: Mapping[str, Any]) -> None:
        for rule in self._hooks:
            if _matches(rule, action, model, values):
                rule.hits += 1
                assert rule.callback is not None
                rule.callback()
        for rule in self._failures:
            if _matches(rule, action, model, values):
                rule.hits += 1
                raise StoreUnavailable(f"Injected {action} failure on {model.__name__}")

    def insert_edge(self, model, values):
        self._check("insert", model, values)
        return super().insert_edge(model, values)

    def delete_edges(self, model, filters):
        self._check("delete", model, filters)
        return super().delete_edges(model, filters)

    def update_edges(self, model, filters, patch):
        self._check("update", model, filters)
        return super().update_edges(model, filters, patch)

    def count_rows(self, model, filters):
        self._check("count", model, filters)
        return super().count_rows(model, filters)


@pytest.fixture()
def store(db_session: Session) -> FlakyStore:
    return FlakyStore(db_session)


@pytest.fixture()
def relationships(store: FlakyStore) -> RelationshipEngine:
    return RelationshipEngine(store)


@pytest.fixture()
def engagement(store: FlakyStore) -> EngagementSynchronizer:
    return EngagementSynchronizer(store)


@pytest.fixture()
def composer(store: FlakyStore) -> FeedComposer:
    return FeedComposer(store, page_size=50)


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory persisting profiles with unique usernames."""

    def _make(display_name: str | None = None) -> User:
        user = User(username=f"user{next(_USERNAME_COUNTER)}", display_name=display_name)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_post(db_session: Session) -> Callable[..., Post]:
    """Return a factory persisting posts for a given author."""

    def _make(author: User, body: str = "Hello world", **extra: Any) -> Post:
        post = Post(author_id=author.id, body=body, **extra)
        db_session.add(post)
        db_session.commit()
        db_session.refresh(post)
        return post

    return _make


@pytest.fixture()
def test_user(make_user: Callable[..., User]) -> User:
    """Create the primary test user."""
    return make_user("Test User")


@pytest.fixture()
def other_user(make_user: Callable[..., User]) -> User:
    """Create a second test user."""
    return make_user("Other User")


@pytest.fixture()
def test_post(make_post: Callable[..., Post], other_user: User) -> Post:
    """Create a post authored by ``other_user``."""
    return make_post(other_user, "Test post content")


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return bearer(test_user)


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return bearer(other_user)


@pytest.fixture()
def auth_for() -> Callable[[User], dict[str, str]]:
    """Return a helper building authorization headers for any user."""
    return bearer
