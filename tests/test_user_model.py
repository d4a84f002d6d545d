"""Tests for the User model helpers and the in-memory store."""

import pytest

from models.user import User, UserPatch
from services.errors import ConflictError
from storage import InMemoryUserStore


def _user(email="helper@example.com", **kwargs):
    return User(email=email, password_hash="pbkdf2:sha256:1000$salt$digest", **kwargs)


def test_new_user_defaults():
    user = _user(email="  Helper@Example.com ")

    assert user.email == "helper@example.com"
    assert user.role == "user"
    assert user.is_active is False
    assert user.id
    assert "digest" not in repr(user)


def test_to_dict_never_exposes_hash():
    payload = _user(name="Helper").to_dict()

    assert set(payload) == {"id", "email", "name", "role", "isActive", "createdAt"}
    assert "digest" not in str(payload)


def test_patch_merges_only_supplied_fields():
    user = _user(name="Old Name")

    updated = UserPatch(name="New Name", is_active=True).apply(user)

    assert updated.name == "New Name"
    assert updated.is_active is True
    assert updated.email == user.email
    assert user.name == "Old Name"


def test_patch_without_role():
    patch = UserPatch(role="admin", name="Someone")
    assert patch.without_role() == UserPatch(name="Someone")
    assert UserPatch(role="admin").without_role().is_empty()


def test_store_enforces_unique_email():
    store = InMemoryUserStore()
    store.add(_user())

    with pytest.raises(ConflictError):
        store.add(_user(email="HELPER@example.com"))


def test_store_update_and_delete():
    store = InMemoryUserStore()
    first = store.add(_user())
    second = store.add(_user(email="other@example.com"))

    with pytest.raises(ConflictError):
        store.update(second.id, UserPatch(email="helper@example.com"))

    renamed = store.update(first.id, UserPatch(email="renamed@example.com"))
    assert store.get_by_email("renamed@example.com") is renamed
    assert store.get_by_email("helper@example.com") is None

    assert store.update("missing", UserPatch(name="x")) is None
    assert store.delete(first.id) is renamed
    assert store.delete(first.id) is None
    assert [user.id for user in store.list()] == [second.id]
