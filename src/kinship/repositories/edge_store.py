"""Single-statement data access for edge tables and posts."""
from __future__ import annotations

import enum
import logging
from collections.abc import Collection, Mapping
from typing import Any, NoReturn, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kinship.models import Post
from kinship.services.errors import StoreUnavailable

__all__ = ["EdgeStore", "Filters"]

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")
Filters = Mapping[str, Any]


class EdgeStore:
    """Thin wrapper around a session that commits every statement on its own.

    The store deliberately offers no multi-statement transaction: each
    mutating call is committed before it returns, so callers composing several
    calls must handle partial failure themselves. Any SQLAlchemy error is
    rolled back and re-raised as :class:`StoreUnavailable`.

    Filters map column names to values. A list, tuple or set value becomes an
    ``IN`` clause.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the store with a SQLAlchemy session."""
        self.session = session

    def insert_edge(self, model: type[ModelT], values: Filters) -> ModelT:
        """Insert a row and return the persisted ORM instance."""
        row = model(**{key: _coerce(value) for key, value in values.items()})
        try:
            self.session.add(row)
            self.session.commit()
            self.session.refresh(row)
        except SQLAlchemyError as err:
            self._fail("insert", model, err)
        return row

    def delete_edges(self, model: type[Any], filters: Filters) -> int:
        """Delete every row matching ``filters`` and return the affected count."""
        stmt = delete(model).where(*_clauses(model, filters))
        try:
            result = self.session.execute(stmt, execution_options={"synchronize_session": False})
            self.session.commit()
        except SQLAlchemyError as err:
            self._fail("delete", model, err)
        self.session.expire_all()
        return int(result.rowcount or 0)

    def update_edges(self, model: type[Any], filters: Filters, patch: Filters) -> int:
        """Apply ``patch`` to rows matching ``filters`` and return the affected count."""
        stmt = (
            update(model)
            .where(*_clauses(model, filters))
            .values({key: _coerce(value) for key, value in patch.items()})
        )
        try:
            result = self.session.execute(stmt, execution_options={"synchronize_session": False})
            self.session.commit()
        except SQLAlchemyError as err:
            self._fail("update", model, err)
        self.session.expire_all()
        return int(result.rowcount or 0)

    def find_edge(self, model: type[ModelT], filters: Filters) -> ModelT | None:
        """Return the first row matching ``filters`` or ``None``."""
        try:
            result = self.session.execute(
                select(model).where(*_clauses(model, filters)).limit(1)
            )
            return result.scalars().first()
        except SQLAlchemyError as err:
            self._fail("find", model, err)

    def find_edges(
        self,
        model: type[ModelT],
        filters: Filters,
        *,
        order_by: str | None = None,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[ModelT]:
        """Return every row matching ``filters``."""
        stmt = select(model).where(*_clauses(model, filters))
        if order_by is not None:
            column = getattr(model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            result = self.session.execute(stmt)
            return list(result.scalars())
        except SQLAlchemyError as err:
            self._fail("find", model, err)

    def count_rows(self, model: type[Any], filters: Filters) -> int:
        """Return the authoritative number of rows matching ``filters``."""
        stmt = select(func.count()).select_from(model).where(*_clauses(model, filters))
        try:
            return int(self.session.execute(stmt).scalar() or 0)
        except SQLAlchemyError as err:
            self._fail("count", model, err)

    def get(self, model: type[ModelT], ident: Any) -> ModelT | None:
        """Return a row by primary key."""
        try:
            return self.session.get(model, ident)
        except SQLAlchemyError as err:
            self._fail("get", model, err)

    def query_posts(
        self,
        author_ids: Collection[str] | None,
        limit: int,
        *,
        exclude_authors: Collection[str] = (),
    ) -> list[Post]:
        """Return visible posts newest first.

        Args:
            author_ids: Restrict to these authors, or ``None`` for all authors.
            limit: Maximum number of posts to return.
            exclude_authors: Authors whose posts are never returned.
        """
        stmt = select(Post).where(Post.deleted.is_(False))
        if author_ids is not None:
            if not author_ids:
                return []
            stmt = stmt.where(Post.author_id.in_(list(author_ids)))
        if exclude_authors:
            stmt = stmt.where(Post.author_id.not_in(list(exclude_authors)))
        stmt = stmt.order_by(Post.created_at.desc(), Post.id.desc()).limit(limit)
        try:
            result = self.session.execute(stmt)
            return list(result.scalars())
        except SQLAlchemyError as err:
            self._fail("query", Post, err)

    def _fail(self, action: str, model: type[Any], err: SQLAlchemyError) -> NoReturn:
        self.session.rollback()
        table = getattr(model, "__tablename__", model.__name__)
        logger.warning("Store %s on %s failed: %s", action, table, err)
        raise StoreUnavailable(f"Store {action} on {table} failed") from err


def _coerce(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    return value


def _clauses(model: type[Any], filters: Filters) -> list[Any]:
    clauses = []
    for name, value in filters.items():
        column = getattr(model, name)
        if isinstance(value, list | tuple | set | frozenset):
            clauses.append(column.in_([_coerce(item) for item in value]))
        elif value is None:
            clauses.append(column.is_(None))
        else:
            clauses.append(column == _coerce(value))
    return clauses
