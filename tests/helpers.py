"""Small assertions helpers shared by the test modules."""
from __future__ import annotations

from typing import Iterable

from sqlalchemy import func, select

from friendly.database import SessionLocal


def count_rows(model: type) -> int:
    with SessionLocal() as session:
        return int(session.scalar(select(func.count()).select_from(model)) or 0)


def names(records: Iterable[object]) -> set[str]:
    return {getattr(record, "name") for record in records}
