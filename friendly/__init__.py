"""Self-referential friendships for SQLAlchemy models."""
from .errors import ConfigurationError, ConflictError, FriendlyError, InvalidOperation
from .repository import Repository, SQLAlchemyRepository
from .resolver import FriendlyConfig, resolve
from .services import FriendlyMethods, FriendshipEngine, attach, enable_friendly, engine_for, friendly

__all__ = [
    "ConfigurationError",
    "ConflictError",
    "FriendlyConfig",
    "FriendlyError",
    "FriendlyMethods",
    "FriendshipEngine",
    "InvalidOperation",
    "Repository",
    "SQLAlchemyRepository",
    "attach",
    "enable_friendly",
    "engine_for",
    "friendly",
    "resolve",
]
