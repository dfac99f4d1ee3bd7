"""User entity — one authenticated principal of the identity provider."""

import re
import uuid
from datetime import datetime, timezone
from typing import Optional

from taskkeeper.errors import ValidationError

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")


def is_valid_email(email: Optional[str]) -> bool:
    return isinstance(email, str) and bool(EMAIL_PATTERN.match(email))


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookups. Emails are case-insensitive."""
    return email.strip().lower()


class User:
    """A signed-up user.

    `id` is the identity provider's subject id and `email` is fixed at
    construction, stored lower-cased so that addresses differing only in
    case belong to one account. `created_at` may be replaced once, when the
    store reports its own creation time for the record.
    """

    __slots__ = ("_id", "_email", "_created_at", "_created_at_synced")

    def __init__(
        self,
        email: str,
        id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ):
        if not is_valid_email(email):
            raise ValidationError("Invalid email format.")
        self._id = id or str(uuid.uuid4())
        self._email = normalize_email(email)
        self._created_at = created_at or datetime.now(timezone.utc)
        self._created_at_synced = False

    @property
    def id(self) -> str:
        return self._id

    @property
    def email(self) -> str:
        return self._email

    @property
    def created_at(self) -> datetime:
        return self._created_at

    def sync_created_at(self, created_at: datetime) -> None:
        """Adopt the store's creation timestamp. Allowed exactly once."""
        if self._created_at_synced:
            raise ValidationError("User creation time has already been synchronized.")
        self._created_at = created_at
        self._created_at_synced = True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return (self._id, self._email, self._created_at) == (
            other._id,
            other._email,
            other._created_at,
        )

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return f"User(id={self._id!r}, email={self._email!r})"
