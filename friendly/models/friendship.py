"""ORM join entity generated for every type that declares friendships."""
from __future__ import annotations

import logging
import sys
from typing import Any

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, UniqueConstraint
from sqlalchemy import inspect
from sqlalchemy.exc import ArgumentError, InvalidRequestError, NoInspectionAvailable
from sqlalchemy.orm import Mapper, relationship

from ..errors import ConfigurationError
from ..resolver import NAMESPACE_SEPARATOR, FriendlyConfig
from .base import FriendshipStateMixin

logger = logging.getLogger(__name__)

_OWNER_ATTRIBUTE = "__friendly_owner__"
_RESERVED_NAMES = frozenset({"id", "requester", "target", "accepted", "accepted_at", "pair_low", "pair_high", "created_at", "updated_at"})

_JOIN_TYPES: dict[type, type] = {}


def mapper_for(owner_type: type) -> Mapper:
    try:
        mapper = inspect(owner_type)
    except NoInspectionAvailable as exc:
        raise ConfigurationError(f"{owner_type.__qualname__} is not a mapped SQLAlchemy class") from exc
    if not isinstance(mapper, Mapper):
        raise ConfigurationError(f"{owner_type.__qualname__} is not a mapped SQLAlchemy class")
    return mapper


def primary_key_column(owner_type: type) -> Column:
    """Return the single primary-key column of a mapped owner type."""
    mapper = mapper_for(owner_type)
    if len(mapper.primary_key) != 1:
        raise ConfigurationError(
            f"{owner_type.__qualname__} needs exactly one primary-key column, found {len(mapper.primary_key)}"
        )
    return mapper.primary_key[0]


def owner_of(join_type: type) -> type | None:
    return getattr(join_type, _OWNER_ATTRIBUTE, None)


def _namespace_object(config: FriendlyConfig) -> Any:
    """Find the module or enclosing class that should hold the join type, if reachable."""
    target: Any = sys.modules.get(config.owner_type.__module__)
    if not config.namespace:
        return target
    for segment in config.namespace.split(NAMESPACE_SEPARATOR):
        target = getattr(target, segment, None)
        if target is None:
            return None
    return target


def _columns(config: FriendlyConfig, pk: Column) -> dict[str, Any]:
    reference = f"{pk.table.name}.{pk.name}"
    requester = Column(pk.type, ForeignKey(reference, ondelete="CASCADE"), nullable=False, index=True)
    target = Column(pk.type, ForeignKey(reference, ondelete="CASCADE"), nullable=False, index=True)
    return {
        "id": Column(Integer, primary_key=True, autoincrement=True),
        config.requester_key: requester,
        config.target_key: target,
        # both ids again, in a fixed order, so the pair is unique whichever side asked
        "pair_low": Column(pk.type, nullable=False),
        "pair_high": Column(pk.type, nullable=False),
        "requester": relationship(config.owner_type, foreign_keys=[requester], lazy="joined"),
        "target": relationship(config.owner_type, foreign_keys=[target], lazy="joined"),
    }


def _define(config: FriendlyConfig) -> type:
    owner_type = config.owner_type
    pk = primary_key_column(owner_type)
    table = config.table_name
    clashes = _RESERVED_NAMES.intersection((config.requester_key, config.target_key))
    if clashes:
        raise ConfigurationError(f"{config.friendship_type_name} cannot use reserved column names {sorted(clashes)}")
    attributes = _columns(config, pk)
    attributes.update(
        {
            "__tablename__": table,
            "__table_args__": (
                UniqueConstraint("pair_low", "pair_high", name=f"uq_{table}_pair"),
                CheckConstraint(f"{config.requester_key} <> {config.target_key}", name=f"ck_{table}_not_self"),
            ),
            "__module__": owner_type.__module__,
            "__qualname__": config.friendship_type_name,
            "__doc__": f"Friendship edge between two {config.reference_model_name} records.",
            _OWNER_ATTRIBUTE: owner_type,
        }
    )
    join_type = type(config.friendship_simple_name, (FriendshipStateMixin,), attributes)
    try:
        mapper_for(owner_type).registry.map_declaratively(join_type)
    except (ArgumentError, InvalidRequestError) as exc:
        raise ConfigurationError(f"Unable to map {config.friendship_type_name}: {exc}") from exc
    logger.info("Defined join entity %s (table %s) for %s", config.friendship_type_name, table, config.reference_model_name)
    return join_type


def registered_join_type(owner_type: type) -> type | None:
    return _JOIN_TYPES.get(owner_type)


def build_friendship_type(config: FriendlyConfig) -> type:
    """Return the join type named by ``config``, defining it when it does not exist yet."""
    namespace = _namespace_object(config)
    existing = getattr(namespace, config.friendship_simple_name, None) if namespace is not None else None
    join_type = _JOIN_TYPES.get(config.owner_type)
    if existing is not None and existing is not join_type:
        bound = owner_of(existing)
        if bound is None:
            raise ConfigurationError(f"{config.friendship_type_name} already exists and is not a friendship join type")
        raise ConfigurationError(
            f"{config.friendship_type_name} already joins {bound.__qualname__}; pass a different friendship_class"
        )

    if join_type is None:
        join_type = _define(config)
        _JOIN_TYPES[config.owner_type] = join_type
    if namespace is not None and existing is None:
        setattr(namespace, config.friendship_simple_name, join_type)
    return join_type


def unbind_friendship_type(config: FriendlyConfig, join_type: type) -> None:
    """Remove ``join_type`` from its namespace; the mapped class stays registered for a retry."""
    namespace = _namespace_object(config)
    if namespace is not None and getattr(namespace, config.friendship_simple_name, None) is join_type:
        delattr(namespace, config.friendship_simple_name)


__all__ = [
    "build_friendship_type",
    "mapper_for",
    "owner_of",
    "primary_key_column",
    "registered_join_type",
    "unbind_friendship_type",
]
