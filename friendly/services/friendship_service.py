"""Business logic for friendship requests, confirmations and friend lists."""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Final, TypeVar

from sqlalchemy.orm import RelationshipProperty, relationship

from ..errors import ConfigurationError, ConflictError, InvalidOperation
from ..models import (
    build_friendship_type,
    mapper_for,
    primary_key_column,
    registered_join_type,
    unbind_friendship_type,
)
from ..repository import Repository, SQLAlchemyRepository
from ..resolver import FriendlyConfig, resolve
from ..schemas import FriendshipRead

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=type)

INITIATED_RELATIONSHIP: Final[str] = "friendships_initiated"
RECEIVED_RELATIONSHIP: Final[str] = "friendships_received"

_engine_lock = threading.Lock()
_ENGINES: dict[type, "FriendshipEngine"] = {}


def _ordered_pair(a: Any, b: Any) -> tuple[Any, Any]:
    return (a, b) if str(a) < str(b) else (b, a)


def pair_predicate(a: Any, b: Any) -> dict[str, Any]:
    """Match the single row joining ``a`` and ``b``, whichever of them asked."""
    first, second = _ordered_pair(a, b)
    return {"pair_low": first, "pair_high": second}


def _default_repository() -> Repository:
    from ..database import SessionLocal

    return SQLAlchemyRepository(SessionLocal)


class FriendshipEngine:
    """Runs friendship operations for one owner type against its join type."""

    def __init__(self, config: FriendlyConfig, join_type: type, repository: Repository) -> None:
        self.config = config
        self.join_type = join_type
        self.repository = repository
        pk = primary_key_column(config.owner_type)
        self._pk_attribute = mapper_for(config.owner_type).get_property_by_column(pk).key

    def __repr__(self) -> str:
        return f"<FriendshipEngine {self.config.reference_model_name} via {self.config.friendship_type_name}>"

    # identity helpers

    def identity_of(self, entity: Any) -> Any | None:
        """Primary key of ``entity`` when it is an owner record, otherwise None."""
        if not isinstance(entity, self.config.owner_type):
            return None
        return getattr(entity, self._pk_attribute, None)

    def _identity(self, entity: Any) -> Any:
        if not isinstance(entity, self.config.owner_type):
            raise InvalidOperation(
                f"Expected a {self.config.reference_model_name}, got {type(entity).__name__}"
            )
        identity = getattr(entity, self._pk_attribute, None)
        if identity is None:
            raise InvalidOperation(f"{self.config.reference_model_name} must be persisted before befriending")
        return identity

    def _requester_of(self, row: Any) -> Any:
        return getattr(row, self.config.requester_key)

    def _target_of(self, row: Any) -> Any:
        return getattr(row, self.config.target_key)

    def _owners(self, identities: set[Any]) -> list[Any]:
        if not identities:
            return []
        return list(self.repository.find_all(self.config.owner_type, {self._pk_attribute: frozenset(identities)}))

    def _visible(self) -> dict[str, Any]:
        return {"accepted": True} if self.config.require_acceptance else {}

    # mutations

    def request_friendship(self, actor: Any, other: Any) -> Any:
        actor_id = self._identity(actor)
        other_id = self._identity(other)
        if actor_id == other_id:
            raise InvalidOperation(f"{self.config.reference_model_name} {actor_id} cannot befriend itself")

        existing = self.friendship_with(actor, other)
        if existing is not None:
            return existing

        accepted = not self.config.require_acceptance
        attributes = {
            self.config.requester_key: actor_id,
            self.config.target_key: other_id,
            "accepted": accepted,
            "accepted_at": datetime.now(timezone.utc) if accepted else None,
            **pair_predicate(actor_id, other_id),
        }
        try:
            row = self.repository.create(self.join_type, attributes)
        except ConflictError:
            existing = self.friendship_with(actor, other)
            if existing is None:
                raise
            logger.info("Concurrent friendship request %s -> %s resolved to existing row", actor_id, other_id)
            return existing
        logger.info(
            "%s %s requested friendship with %s (accepted=%s)",
            self.config.reference_model_name,
            actor_id,
            other_id,
            accepted,
        )
        return row

    def confirm_friendship_with(self, actor: Any, other: Any) -> bool:
        """Accept the pending request ``other`` sent to ``actor``. Returns False if there is none."""
        actor_id = self._identity(actor)
        other_id = self._identity(other)
        row = self.repository.find_one(
            self.join_type,
            {self.config.target_key: actor_id, self.config.requester_key: other_id, "accepted": False},
        )
        if row is None:
            logger.info("No pending friendship from %s to %s to confirm", other_id, actor_id)
            return False
        self.repository.update(row, {"accepted": True, "accepted_at": datetime.now(timezone.utc)})
        logger.info("%s %s confirmed friendship with %s", self.config.reference_model_name, actor_id, other_id)
        return True

    def deny_friendship_with(self, actor: Any, other: Any) -> bool:
        """Drop the pending request ``other`` sent to ``actor`` without touching accepted rows."""
        actor_id = self._identity(actor)
        other_id = self._identity(other)
        if not self.config.require_acceptance:
            return False
        deleted = self.repository.delete_all(
            self.join_type,
            {self.config.target_key: actor_id, self.config.requester_key: other_id, "accepted": False},
        )
        if not deleted:
            logger.info("No pending friendship from %s to %s to deny", other_id, actor_id)
        return deleted > 0

    def end_friendship_with(self, actor: Any, other: Any) -> bool:
        actor_id = self._identity(actor)
        other_id = self._identity(other)
        deleted = self.repository.delete_all(self.join_type, pair_predicate(actor_id, other_id))
        if not deleted:
            logger.info("No friendship between %s and %s to end", actor_id, other_id)
            return False
        logger.info("%s %s ended friendship with %s", self.config.reference_model_name, actor_id, other_id)
        return True

    # queries

    def friendship_with(self, entity: Any, other: Any) -> Any | None:
        """Return the row joining both entities in either direction, whatever its state."""
        return self.repository.find_one(
            self.join_type, pair_predicate(self._identity(entity), self._identity(other))
        )

    def _friend_ids(self, entity: Any) -> set[Any]:
        entity_id = self._identity(entity)
        visible = self._visible()
        sent = self.repository.find_all(self.join_type, {self.config.requester_key: entity_id, **visible})
        received = self.repository.find_all(self.join_type, {self.config.target_key: entity_id, **visible})
        return {self._target_of(row) for row in sent} | {self._requester_of(row) for row in received}

    def friends(self, entity: Any) -> list[Any]:
        return self._owners(self._friend_ids(entity))

    def friend_count(self, entity: Any) -> int:
        return len(self._friend_ids(entity))

    def friendship_requests(self, entity: Any) -> list[Any]:
        entity_id = self._identity(entity)
        if not self.config.require_acceptance:
            return []
        rows = self.repository.find_all(self.join_type, {self.config.requester_key: entity_id, "accepted": False})
        return self._owners({self._target_of(row) for row in rows})

    def friendships_to_accept(self, entity: Any) -> list[Any]:
        entity_id = self._identity(entity)
        if not self.config.require_acceptance:
            return []
        rows = self.repository.find_all(self.join_type, {self.config.target_key: entity_id, "accepted": False})
        return self._owners({self._requester_of(row) for row in rows})

    def friendship_requested(self, entity: Any, other: Any) -> bool:
        entity_id = self._identity(entity)
        other_id = self._identity(other)
        if entity_id == other_id:
            return False
        row = self.repository.find_one(
            self.join_type, {self.config.requester_key: entity_id, self.config.target_key: other_id}
        )
        return row is not None

    def friendship_to_accept(self, entity: Any, other: Any) -> bool:
        entity_id = self._identity(entity)
        other_id = self._identity(other)
        if not self.config.require_acceptance or entity_id == other_id:
            return False
        row = self.repository.find_one(
            self.join_type,
            {self.config.target_key: entity_id, self.config.requester_key: other_id, "accepted": False},
        )
        return row is not None

    def is_friends_with(self, entity: Any, other: Any) -> bool:
        row = self.friendship_with(entity, other)
        if row is None:
            return False
        return bool(row.accepted) or not self.config.require_acceptance

    def describe(self, row: Any) -> FriendshipRead:
        return FriendshipRead(
            id=row.id,
            requester_id=self._requester_of(row),
            target_id=self._target_of(row),
            accepted=bool(row.accepted) or not self.config.require_acceptance,
            created_at=row.created_at,
            accepted_at=row.accepted_at,
        )


class FriendlyMethods:
    """Instance operations copied onto every owner type by :func:`attach`.

    Owner models may also inherit from this class so type checkers see the methods.
    """

    def __eq__(self, other: object) -> bool:
        # records loaded by different sessions are the same record when their keys match
        engine = type(self).friendly
        identity, other_identity = engine.identity_of(self), engine.identity_of(other)
        if identity is None or other_identity is None:
            return self is other
        return identity == other_identity

    def __hash__(self) -> int:
        identity = type(self).friendly.identity_of(self)
        if identity is None:
            return object.__hash__(self)
        return hash((type(self).friendly.config.owner_type, identity))

    def request_friendship(self, other: Any) -> Any:
        return type(self).friendly.request_friendship(self, other)

    def confirm_friendship_with(self, other: Any) -> bool:
        return type(self).friendly.confirm_friendship_with(self, other)

    def deny_friendship_with(self, other: Any) -> bool:
        return type(self).friendly.deny_friendship_with(self, other)

    def end_friendship_with(self, other: Any) -> bool:
        return type(self).friendly.end_friendship_with(self, other)

    def friends(self) -> list[Any]:
        return type(self).friendly.friends(self)

    def friend_count(self) -> int:
        return type(self).friendly.friend_count(self)

    def friendship_requests(self) -> list[Any]:
        return type(self).friendly.friendship_requests(self)

    def friendships_to_accept(self) -> list[Any]:
        return type(self).friendly.friendships_to_accept(self)

    def friendship_requested(self, other: Any) -> bool:
        return type(self).friendly.friendship_requested(self, other)

    def friendship_to_accept(self, other: Any) -> bool:
        return type(self).friendly.friendship_to_accept(self, other)

    def is_friends_with(self, other: Any) -> bool:
        return type(self).friendly.is_friends_with(self, other)

    def friendship_with(self, other: Any) -> Any | None:
        return type(self).friendly.friendship_with(self, other)


COMPARISON_OPERATIONS: Final[tuple[str, ...]] = ("__eq__", "__hash__")

INSTANCE_OPERATIONS: Final[tuple[str, ...]] = (
    "request_friendship",
    "confirm_friendship_with",
    "deny_friendship_with",
    "end_friendship_with",
    "friends",
    "friend_count",
    "friendship_requests",
    "friendships_to_accept",
    "friendship_requested",
    "friendship_to_accept",
    "is_friends_with",
    "friendship_with",
)


def _wired_to(mapper: Any, name: str, join_type: type | None) -> bool:
    if join_type is None or not mapper.has_property(name):
        return False
    prop = mapper.get_property(name)
    return isinstance(prop, RelationshipProperty) and prop.argument is join_type


def _check_free(owner_type: type) -> None:
    mapper = mapper_for(owner_type)
    join_type = registered_join_type(owner_type)
    for name in (INITIATED_RELATIONSHIP, RECEIVED_RELATIONSHIP):
        if _wired_to(mapper, name, join_type):
            continue
        if mapper.has_property(name) or hasattr(owner_type, name):
            raise ConfigurationError(f"{owner_type.__qualname__}.{name} is already defined")
    for name in ("friendly_config", "friendly", *INSTANCE_OPERATIONS):
        current = getattr(owner_type, name, None)
        if current is not None and current is not FriendlyMethods.__dict__.get(name):
            raise ConfigurationError(f"{owner_type.__qualname__}.{name} is already defined")
    for name in COMPARISON_OPERATIONS:
        current = getattr(owner_type, name)
        if current not in (getattr(object, name), FriendlyMethods.__dict__[name]):
            raise ConfigurationError(f"{owner_type.__qualname__} already defines {name}")


def _add_relationships(owner_type: type, engine: FriendshipEngine) -> None:
    mapper = mapper_for(owner_type)
    table = engine.join_type.__table__
    for name, key in ((INITIATED_RELATIONSHIP, engine.config.requester_key), (RECEIVED_RELATIONSHIP, engine.config.target_key)):
        if _wired_to(mapper, name, engine.join_type):
            continue
        mapper.add_property(name, relationship(engine.join_type, foreign_keys=[table.c[key]], viewonly=True))


def attach(owner_type: type, config: FriendlyConfig, repository: Repository | None = None) -> FriendshipEngine:
    """Materialize the join type for ``owner_type`` and wire the friendship operations onto it."""
    engine = _ENGINES.get(owner_type)
    if engine is not None:
        return engine
    with _engine_lock:
        engine = _ENGINES.get(owner_type)
        if engine is not None:
            return engine

        _check_free(owner_type)
        join_type = build_friendship_type(config)
        try:
            engine = FriendshipEngine(config, join_type, repository or _default_repository())
            _add_relationships(owner_type, engine)
        except Exception:
            unbind_friendship_type(config, join_type)
            raise
        setattr(owner_type, "friendly_config", config)
        setattr(owner_type, "friendly", engine)
        for name in (*COMPARISON_OPERATIONS, *INSTANCE_OPERATIONS):
            setattr(owner_type, name, FriendlyMethods.__dict__[name])
        _ENGINES[owner_type] = engine
    logger.info("Enabled friendships on %s", owner_type.__qualname__)
    return engine


def enable_friendly(owner_type: type, *, repository: Repository | None = None, **options: Any) -> FriendshipEngine:
    """Declare ``owner_type`` friendly. Safe to call again with the same options."""
    config = resolve(owner_type, **options)
    return attach(owner_type, config, repository)


def friendly(*, repository: Repository | None = None, **options: Any) -> Callable[[T], T]:
    """Class decorator form of :func:`enable_friendly`."""

    def _decorate(owner_type: T) -> T:
        enable_friendly(owner_type, repository=repository, **options)
        return owner_type

    return _decorate


def engine_for(owner_type: type) -> FriendshipEngine | None:
    return _ENGINES.get(owner_type)


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
