"""Tests for the SQLAlchemy-backed repository."""
from __future__ import annotations

from typing import Any, Callable

import pytest

from friendly import ConflictError
from friendly.database import SessionLocal
from friendly.repository import SQLAlchemyRepository
from friendly.services import pair_predicate
from tests.models import Person


@pytest.fixture
def repository() -> SQLAlchemyRepository:
    return SQLAlchemyRepository(SessionLocal)


def _edge(requester: Any, target: Any) -> dict[str, Any]:
    return {
        "person_id": requester.id,
        "friendship_id": target.id,
        "accepted": False,
        **pair_predicate(requester.id, target.id),
    }


def test_pair_predicate_ignores_direction() -> None:
    assert pair_predicate(3, 12) == pair_predicate(12, 3)
    assert pair_predicate("a", "b:c") != pair_predicate("a:b", "c")


def test_create_find_update_delete(repository: SQLAlchemyRepository, record_factory: Callable[[type, str], Any]) -> None:
    join_type = Person.friendly.join_type
    ann = record_factory(Person, "ann")
    bob = record_factory(Person, "bob")
    cid = record_factory(Person, "cid")

    created = repository.create(join_type, _edge(ann, bob))
    assert created.id is not None
    assert created.created_at is not None

    found = repository.find_one(join_type, {"person_id": ann.id, "accepted": False})
    assert found is not None and found.id == created.id
    assert repository.find_one(join_type, {"person_id": bob.id}) is None

    updated = repository.update(found, {"accepted": True})
    assert updated.accepted is True
    assert repository.find_one(join_type, {"person_id": ann.id, "accepted": False}) is None

    people = repository.find_all(Person, {"id": {ann.id, cid.id}})
    assert [person.name for person in people] == ["ann", "cid"]

    assert repository.delete_all(join_type, pair_predicate(bob.id, ann.id)) == 1
    assert repository.delete_all(join_type, pair_predicate(bob.id, ann.id)) == 0


def test_duplicate_pair_raises_conflict(repository: SQLAlchemyRepository, record_factory: Callable[[type, str], Any]) -> None:
    join_type = Person.friendly.join_type
    ann = record_factory(Person, "ann")
    bob = record_factory(Person, "bob")

    repository.create(join_type, _edge(ann, bob))
    with pytest.raises(ConflictError):
        repository.create(join_type, _edge(bob, ann))
    assert len(repository.find_all(join_type, {})) == 1


def test_join_rows_load_both_participants(repository: SQLAlchemyRepository, record_factory: Callable[[type, str], Any]) -> None:
    join_type = Person.friendly.join_type
    ann = record_factory(Person, "ann")
    bob = record_factory(Person, "bob")
    repository.create(join_type, _edge(ann, bob))

    row = repository.find_one(join_type, pair_predicate(ann.id, bob.id))
    assert row is not None
    assert row.requester.name == "ann"
    assert row.target.name == "bob"
