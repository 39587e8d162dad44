"""Shared fixtures: a throwaway sqlite database with every friendly model created."""
from __future__ import annotations

import os
from typing import Callable, Iterator

import pytest
from sqlalchemy import delete

os.environ.setdefault("FRIENDLY_DATABASE_URL", "sqlite+pysqlite:///./test_friendly.db")

from friendly.database import Base, SessionLocal, engine, init_db  # noqa: E402
from tests.models import Handle, Member, Person  # noqa: E402
from tests.namespaced_models import SomeModule  # noqa: E402

OWNER_TYPES = (Person, Member, SomeModule.Member, Handle)


@pytest.fixture(scope="session", autouse=True)
def _create_schema() -> Iterator[None]:
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    with SessionLocal() as session:
        for owner_type in OWNER_TYPES:
            session.execute(delete(owner_type.friendly.join_type))
        for owner_type in OWNER_TYPES:
            session.execute(delete(owner_type))
        session.commit()
    yield


@pytest.fixture
def record_factory() -> Callable[..., object]:
    def _factory(owner_type: type, name: str, **values: object) -> object:
        with SessionLocal() as session:
            record = owner_type(name=name, **values)
            session.add(record)
            session.commit()
            session.refresh(record)
            return record
    return _factory
