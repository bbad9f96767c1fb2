import uuid

import pytest

import users
from errors import NotFound


def test_create_guest(store):
    user = users.create_guest(store, "Mozilla/5.0")

    assert str(uuid.UUID(user["id"])) == user["id"]
    assert user["name"] == f"Guest-{user['id'][:8]}"
    assert user["role"] == "guest"
    assert user["user_agent"] == "Mozilla/5.0"
    assert [u["id"] for u in users.list_users(store)] == [user["id"]]


def test_missing_user_agent(store):
    assert users.create_guest(store)["user_agent"] == "Unknown"


def test_delete_user(store):
    user = users.create_guest(store)

    users.delete_user(store, user["id"])

    assert users.list_users(store) == []
    with pytest.raises(NotFound):
        users.delete_user(store, user["id"])


def test_touch_unknown_user(store):
    assert users.touch(store, "ghost") is False
