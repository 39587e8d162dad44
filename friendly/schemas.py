"""Schemas for declaration options and serialised friendship rows."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool


class FriendlyOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    friendship_class: str | None = Field(default=None, min_length=1, max_length=255)
    require_acceptance: StrictBool | None = None


class FriendshipRead(BaseModel):
    """Storage-agnostic view of one join row, keyed by role rather than column name."""

    model_config = ConfigDict(frozen=True)

    id: Any
    requester_id: Any
    target_id: Any
    accepted: bool
    created_at: datetime | None = None
    accepted_at: datetime | None = None


__all__ = ["FriendlyOptions", "FriendshipRead"]
