"""Convenience exports for ORM models."""
from .base import FriendshipStateMixin
from .friendship import (
    build_friendship_type,
    mapper_for,
    owner_of,
    primary_key_column,
    registered_join_type,
    unbind_friendship_type,
)

__all__ = [
    "FriendshipStateMixin",
    "build_friendship_type",
    "mapper_for",
    "owner_of",
    "primary_key_column",
    "registered_join_type",
    "unbind_friendship_type",
]
