"""Column mixins shared by every generated join entity."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime
from sqlalchemy.sql import expression, func


class FriendshipStateMixin:
    """Request state and timestamps; the foreign keys and pair columns are added per owner type."""

    accepted = Column(Boolean, nullable=False, server_default=expression.false(), default=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


__all__ = ["FriendshipStateMixin"]
