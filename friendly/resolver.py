"""Derive the join-entity naming and policy for a type that declares friendships."""
from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from typing import Any, Final

from pydantic import ValidationError

from .config import get_settings
from .errors import ConfigurationError
from .schemas import FriendlyOptions

logger = logging.getLogger(__name__)

NAMESPACE_SEPARATOR: Final[str] = "."

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_config_lock = threading.Lock()
_CONFIG_CACHE: dict[type, "FriendlyConfig"] = {}


def underscore(name: str) -> str:
    """Convert ``SomeModule.FriendShip`` style names to ``some_module_friend_ship``."""
    parts = [segment for segment in name.split(NAMESPACE_SEPARATOR) if _IDENTIFIER.match(segment)]
    return "_".join(_CAMEL_BOUNDARY.sub("_", part).lower() for part in parts)


@dataclass(frozen=True)
class FriendlyConfig:
    owner_type: type
    friendship_type_name: str
    reference_model_name: str
    requester_key: str
    target_key: str
    require_acceptance: bool = True

    @property
    def namespace(self) -> str:
        head, _, _ = self.friendship_type_name.rpartition(NAMESPACE_SEPARATOR)
        return head

    @property
    def friendship_simple_name(self) -> str:
        return self.friendship_type_name.rpartition(NAMESPACE_SEPARATOR)[2]

    @property
    def table_name(self) -> str:
        return f"{underscore(self.friendship_type_name)}s"


def _owner_names(owner_type: Any) -> tuple[str, str]:
    if not isinstance(owner_type, type):
        raise ConfigurationError(f"Friendships can only be declared on classes, got {owner_type!r}")
    simple = getattr(owner_type, "__name__", None)
    qualified = getattr(owner_type, "__qualname__", None)
    module = getattr(owner_type, "__module__", None)
    if not simple or not qualified or not module or not _IDENTIFIER.match(simple):
        raise ConfigurationError(f"Cannot determine the name and namespace of {owner_type!r}")
    if qualified.rpartition(NAMESPACE_SEPARATOR)[2] != simple:
        raise ConfigurationError(f"{owner_type!r} has a qualified name {qualified!r} that does not end with {simple!r}")
    namespace = qualified.rpartition(NAMESPACE_SEPARATOR)[0]
    return simple, namespace


def _qualify(friendship_class: str, namespace: str) -> str:
    segments = friendship_class.split(NAMESPACE_SEPARATOR)
    if not all(_IDENTIFIER.match(segment) for segment in segments):
        raise ConfigurationError(f"Invalid friendship_class {friendship_class!r}")
    if len(segments) > 1 or not namespace:
        return friendship_class
    return f"{namespace}{NAMESPACE_SEPARATOR}{friendship_class}"


def _parse_options(options: dict[str, Any]) -> FriendlyOptions:
    try:
        return FriendlyOptions(**options)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid friendly options: {exc.errors()}") from exc


def _compute(owner_type: type, options: FriendlyOptions) -> FriendlyConfig:
    settings = get_settings()
    reference_model_name, namespace = _owner_names(owner_type)
    friendship_class = options.friendship_class or settings.default_friendship_class
    friendship_type_name = _qualify(friendship_class, namespace)
    require_acceptance = settings.require_acceptance if options.require_acceptance is None else options.require_acceptance

    simple_target = friendship_type_name.rpartition(NAMESPACE_SEPARATOR)[2]
    requester_key = f"{underscore(reference_model_name)}{settings.key_suffix}"
    target_key = f"{underscore(simple_target)}{settings.key_suffix}"
    if requester_key == target_key:
        raise ConfigurationError(
            f"{owner_type.__qualname__} and its join entity {friendship_type_name} would share the key {requester_key!r}"
        )

    return FriendlyConfig(
        owner_type=owner_type,
        friendship_type_name=friendship_type_name,
        reference_model_name=reference_model_name,
        requester_key=requester_key,
        target_key=target_key,
        require_acceptance=require_acceptance,
    )


def _check_consistent(config: FriendlyConfig, options: FriendlyOptions) -> None:
    if options.require_acceptance is not None and options.require_acceptance != config.require_acceptance:
        raise ConfigurationError(
            f"{config.owner_type.__qualname__} already declared require_acceptance={config.require_acceptance}"
        )
    if options.friendship_class is not None:
        requested = _qualify(options.friendship_class, _owner_names(config.owner_type)[1])
        if requested != config.friendship_type_name:
            raise ConfigurationError(
                f"{config.owner_type.__qualname__} already declared friendship_class={config.friendship_type_name!r}"
            )


def resolve(owner_type: Any, **options: Any) -> FriendlyConfig:
    """Return the cached config for ``owner_type``, computing it on first use."""
    parsed = _parse_options(options)
    config = _CONFIG_CACHE.get(owner_type) if isinstance(owner_type, type) else None
    if config is None:
        with _config_lock:
            config = _CONFIG_CACHE.get(owner_type) if isinstance(owner_type, type) else None
            if config is None:
                config = _compute(owner_type, parsed)
                _CONFIG_CACHE[owner_type] = config
                logger.debug(
                    "Resolved friendly config for %s: %s(%s, %s)",
                    config.reference_model_name,
                    config.friendship_type_name,
                    config.requester_key,
                    config.target_key,
                )
                return config
    _check_consistent(config, parsed)
    return config


def cached_config(owner_type: type) -> FriendlyConfig | None:
    return _CONFIG_CACHE.get(owner_type)


__all__ = ["FriendlyConfig", "NAMESPACE_SEPARATOR", "cached_config", "resolve", "underscore"]
