"""Service layer exports."""
from .friendship_service import (
    FriendlyMethods,
    FriendshipEngine,
    INSTANCE_OPERATIONS,
    attach,
    enable_friendly,
    engine_for,
    friendly,
    pair_predicate,
)

__all__ = [
    "FriendlyMethods",
    "FriendshipEngine",
    "INSTANCE_OPERATIONS",
    "attach",
    "enable_friendly",
    "engine_for",
    "friendly",
    "pair_predicate",
]
