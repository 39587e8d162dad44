"""Exception types raised by the friendship engine."""
from __future__ import annotations


class FriendlyError(RuntimeError):
    """Base class for every error raised by this package."""


class ConfigurationError(FriendlyError):
    """Raised at declaration time when an owner type or its options cannot be wired."""


class InvalidOperation(FriendlyError):
    """Raised when a friendship operation is misused, e.g. befriending oneself."""


class ConflictError(FriendlyError):
    """Raised by a repository when a write violates a uniqueness constraint."""


__all__ = ["FriendlyError", "ConfigurationError", "InvalidOperation", "ConflictError"]
