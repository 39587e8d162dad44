"""Friendly model nested inside a namespace class."""
from __future__ import annotations

from sqlalchemy import Column, Integer, String

from friendly import enable_friendly
from friendly.database import Base


class SomeModule:
    class Member(Base):
        __tablename__ = "some_module_members"

        id = Column(Integer, primary_key=True, autoincrement=True)
        name = Column(String(150), nullable=False)


# The namespace has to exist before the join type can be bound into it.
enable_friendly(SomeModule.Member)


__all__ = ["SomeModule"]
