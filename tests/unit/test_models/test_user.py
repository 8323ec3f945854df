"""Tests for User and Actor models."""

import pytest
from src.models.user import Actor, User, is_admin_role


@pytest.mark.unit
@pytest.mark.parametrize("role,user_type,expected", [
    (0, "volunteer", True),
    ("0", None, True),
    (1, "admin", True),
    (1, "ADMIN", True),
    (1, "volunteer", False),
    (None, None, False),
    ("x", None, False),
])
def test_is_admin_role(role, user_type, expected):
    assert is_admin_role(role, user_type) is expected


@pytest.mark.unit
def test_actor_admin_flag_computed_at_construction():
    """Test is_admin is derived from role/user_type, not taken from input."""
    assert Actor(id=1, role=0).is_admin is True
    assert Actor(id=1, user_type="admin").is_admin is True
    assert Actor(id=1, role=1, user_type="volunteer", is_admin=True).is_admin is False


@pytest.mark.unit
def test_actor_is_immutable():
    actor = Actor(id=1, role=1)
    with pytest.raises(Exception):
        actor.role = 0


@pytest.mark.unit
def test_actor_from_user():
    user = User(id=5, name="Sam", email="sam@example.org", role=0, user_type="admin")
    actor = Actor.from_user(user)

    assert actor.id == 5
    assert actor.is_admin
    assert actor.name == "Sam"
    assert user.is_admin
