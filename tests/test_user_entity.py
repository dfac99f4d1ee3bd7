"""User entity tests."""

from datetime import datetime, timezone

import pytest

from taskkeeper.domain.user import User, is_valid_email
from taskkeeper.errors import ValidationError


@pytest.mark.parametrize(
    "email,valid",
    [
        ("a@b.co", True),
        ("first.last@example.com", True),
        ("", False),
        ("no-at-sign.com", False),
        ("a@b", False),
        ("a b@c.com", False),
        (None, False),
    ],
)
def test_is_valid_email(email, valid):
    assert is_valid_email(email) is valid


def test_user_gets_id_and_creation_time():
    user = User("a@example.com")
    assert user.id
    assert user.email == "a@example.com"
    assert user.created_at.tzinfo is not None


def test_invalid_email_rejected():
    with pytest.raises(ValidationError, match="Invalid email format."):
        User("not-an-email")


def test_sync_created_at_only_once():
    user = User("a@example.com", id="sub-1")
    stored = datetime(2024, 5, 1, tzinfo=timezone.utc)
    user.sync_created_at(stored)
    assert user.created_at == stored
    with pytest.raises(ValidationError):
        user.sync_created_at(datetime.now(timezone.utc))
    assert user.created_at == stored


def test_email_is_stored_lower_cased():
    assert User("  Dave@Example.COM ").email == "dave@example.com"
