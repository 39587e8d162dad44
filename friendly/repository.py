"""Storage collaborator used by the friendship engine."""
from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Protocol, Sequence, TypeVar

from sqlalchemy import delete, inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Predicate = Mapping[str, Any]

_MULTI_VALUE_TYPES = (list, tuple, set, frozenset)


class Repository(Protocol):
    """Create/find/update/delete records by attribute predicates.

    A predicate maps attribute names to values. A list, tuple or set value
    matches any of its members.
    """

    def create(self, entity_type: type[T], attributes: Mapping[str, Any]) -> T:
        ...

    def find_one(self, entity_type: type[T], predicate: Predicate) -> T | None:
        ...

    def find_all(self, entity_type: type[T], predicate: Predicate) -> Sequence[T]:
        ...

    def update(self, record: T, attributes: Mapping[str, Any]) -> T:
        ...

    def delete_all(self, entity_type: type, predicate: Predicate) -> int:
        ...


def _criteria(entity_type: type, predicate: Predicate) -> list[Any]:
    clauses = []
    for key, value in predicate.items():
        column = getattr(entity_type, key)
        if isinstance(value, _MULTI_VALUE_TYPES):
            clauses.append(column.in_(list(value)))
        elif value is None:
            clauses.append(column.is_(None))
        else:
            clauses.append(column == value)
    return clauses


class SQLAlchemyRepository:
    """Repository backed by short-lived SQLAlchemy sessions, one per call."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def create(self, entity_type: type[T], attributes: Mapping[str, Any]) -> T:
        record = entity_type(**attributes)
        with self._session_factory() as session:
            session.add(record)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError(f"{entity_type.__name__} violates a uniqueness constraint") from exc
            except SQLAlchemyError:
                session.rollback()
                raise
            session.refresh(record)
            return record

    def find_one(self, entity_type: type[T], predicate: Predicate) -> T | None:
        stmt = select(entity_type).where(*_criteria(entity_type, predicate)).limit(1)
        with self._session_factory() as session:
            return session.scalars(stmt).first()

    def find_all(self, entity_type: type[T], predicate: Predicate) -> list[T]:
        mapper = inspect(entity_type)
        stmt = select(entity_type).where(*_criteria(entity_type, predicate)).order_by(*mapper.primary_key)
        with self._session_factory() as session:
            return list(session.scalars(stmt).unique())

    def update(self, record: T, attributes: Mapping[str, Any]) -> T:
        with self._session_factory() as session:
            merged = session.merge(record)
            for key, value in attributes.items():
                setattr(merged, key, value)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError(f"{type(record).__name__} violates a uniqueness constraint") from exc
            except SQLAlchemyError:
                session.rollback()
                raise
            session.refresh(merged)
            return merged

    def delete_all(self, entity_type: type, predicate: Predicate) -> int:
        stmt = delete(entity_type).where(*_criteria(entity_type, predicate))
        with self._session_factory() as session:
            try:
                result = session.execute(stmt)
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                raise
            deleted = result.rowcount or 0
        logger.debug("Deleted %d %s rows", deleted, entity_type.__name__)
        return int(deleted)


__all__ = ["Predicate", "Repository", "SQLAlchemyRepository"]
