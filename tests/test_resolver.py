"""Tests for deriving friendly configuration from an owner type."""
from __future__ import annotations

import pytest

from friendly import ConfigurationError, resolve
from friendly.resolver import cached_config, underscore
from tests.models import Member, Person
from tests.namespaced_models import SomeModule


def test_default_options() -> None:
    config = Person.friendly_config
    assert config.friendship_type_name == "Friendship"
    assert config.reference_model_name == "Person"
    assert config.requester_key == "person_id"
    assert config.target_key == "friendship_id"
    assert config.require_acceptance is True
    assert config.table_name == "friendships"


def test_friendship_class_and_acceptance_set() -> None:
    config = Member.friendly_config
    assert config.friendship_type_name == "Membership"
    assert config.reference_model_name == "Member"
    assert config.requester_key == "member_id"
    assert config.target_key == "membership_id"
    assert config.require_acceptance is False


def test_namespaced_owner_gets_namespaced_join_type() -> None:
    config = SomeModule.Member.friendly_config
    assert config.friendship_type_name == "SomeModule.Friendship"
    assert config.reference_model_name == "Member"
    assert config.requester_key == "member_id"
    assert config.target_key == "friendship_id"
    assert config.require_acceptance is True
    assert config.namespace == "SomeModule"
    assert config.table_name == "some_module_friendships"


def test_resolution_is_cached_per_type() -> None:
    assert resolve(Person) is Person.friendly_config
    assert cached_config(Person) is Person.friendly_config
    assert resolve(Person, require_acceptance=True) is Person.friendly_config


def test_conflicting_redeclaration_fails() -> None:
    with pytest.raises(ConfigurationError):
        resolve(Person, require_acceptance=False)
    with pytest.raises(ConfigurationError):
        resolve(Member, friendship_class="Friendship")


def test_qualified_friendship_class_is_used_as_is() -> None:
    class Outer:
        class Gizmo:
            pass

    config = resolve(Outer.Gizmo, friendship_class="Elsewhere.GizmoLink")
    assert config.friendship_type_name == "Elsewhere.GizmoLink"
    assert config.target_key == "gizmo_link_id"
    assert config.requester_key == "gizmo_id"


def test_camel_case_names_are_underscored() -> None:
    class TeamMember:
        pass

    config = resolve(TeamMember, friendship_class="TeamBond")
    assert config.requester_key == "team_member_id"
    assert config.target_key == "team_bond_id"
    assert underscore("SomeModule.HTTPFriendship") == "some_module_http_friendship"


def test_resolution_does_not_define_join_type() -> None:
    class Loner:
        pass

    resolve(Loner, friendship_class="LonerLink")
    assert not hasattr(Loner, "friendly")


@pytest.mark.parametrize("owner", [None, "Person", 42, Person(name="instance")])
def test_malformed_owner_reference(owner: object) -> None:
    with pytest.raises(ConfigurationError):
        resolve(owner)


@pytest.mark.parametrize(
    "options",
    [
        {"friendship_class": ""},
        {"friendship_class": "Bad..Name"},
        {"friendship_class": "9Lives"},
        {"require_acceptance": "yes"},
        {"acceptance": True},
    ],
)
def test_invalid_options(options: dict) -> None:
    class Fresh:
        pass

    with pytest.raises(ConfigurationError):
        resolve(Fresh, **options)


def test_colliding_keys_are_rejected() -> None:
    class Pal:
        pass

    with pytest.raises(ConfigurationError):
        resolve(Pal, friendship_class="Pal")
