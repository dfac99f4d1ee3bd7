"""Task entity — a personal to-do item owned by exactly one user.

Learn: The entity validates itself. Fields are read-only properties;
the only ways to change a task are update_details() and the completion
transitions, and each of them re-checks the constraints. Stores rehydrate
tasks through the same constructor, so a bad row can never become a Task.

Completion is a two-state machine:
  pending ⇄ completed
mark_as_completed / mark_as_pending are no-ops when already in the target
state; toggle_completion always flips.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from taskkeeper.errors import ValidationError

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


def _clean_title(title: Optional[str]) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Task title cannot be empty.")
    title = title.strip()
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Task title cannot exceed {TITLE_MAX_LENGTH} characters.")
    return title


def _clean_description(description: Optional[str]) -> str:
    if description is None:
        raise ValidationError("Task description must be provided (can be empty string).")
    if not isinstance(description, str):
        raise ValidationError("Task description must be a string.")
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Task description cannot exceed {DESCRIPTION_MAX_LENGTH} characters."
        )
    return description


class Task:
    """A task, always bound to the user that created it."""

    __slots__ = ("_id", "_user_id", "_title", "_description", "_created_at", "_is_completed")

    def __init__(
        self,
        user_id: str,
        title: str,
        description: str,
        id: Optional[str] = None,
        created_at: Optional[datetime] = None,
        is_completed: bool = False,
    ):
        if not user_id:
            raise ValidationError("Task must belong to a user (user_id is required).")
        self._user_id = user_id
        self._title = _clean_title(title)
        self._description = _clean_description(description)
        self._id = id or str(uuid.uuid4())
        self._created_at = created_at or datetime.now(timezone.utc)
        self._is_completed = bool(is_completed)

    @property
    def id(self) -> str:
        return self._id

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def title(self) -> str:
        return self._title

    @property
    def description(self) -> str:
        return self._description

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def is_completed(self) -> bool:
        return self._is_completed

    def is_owned_by(self, user_id: str) -> bool:
        return self._user_id == user_id

    # ─── Mutators ────────────────────────────────────────

    def update_details(self, title: str, description: str) -> None:
        """Replace title and description. Both are validated before either changes."""
        title = _clean_title(title)
        description = _clean_description(description)
        self._title = title
        self._description = description

    def mark_as_completed(self) -> None:
        if self._is_completed:
            return
        self._is_completed = True

    def mark_as_pending(self) -> None:
        if not self._is_completed:
            return
        self._is_completed = False

    def toggle_completion(self) -> None:
        self._is_completed = not self._is_completed

    # ─── Value semantics ─────────────────────────────────

    def snapshot(self) -> tuple:
        return (
            self._id,
            self._user_id,
            self._title,
            self._description,
            self._created_at,
            self._is_completed,
        )

    def copy(self) -> "Task":
        return Task(
            self._user_id,
            self._title,
            self._description,
            id=self._id,
            created_at=self._created_at,
            is_completed=self._is_completed,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Task):
            return NotImplemented
        return self.snapshot() == other.snapshot()

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return (
            f"Task(id={self._id!r}, user_id={self._user_id!r}, "
            f"title={self._title!r}, is_completed={self._is_completed!r})"
        )
