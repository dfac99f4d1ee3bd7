"""In-memory stores — test doubles and throwaway local runs.

Learn: Same contracts as the SQL stores. Entities are copied on the way
in and out, so callers never hold a reference into the store: mutating
a loaded Task changes nothing until save() is called, exactly like a
real database.
"""

from datetime import datetime, timezone
from typing import Optional

from taskkeeper.auth.session_state import SessionState, SessionStateStore
from taskkeeper.domain.repositories import TaskStore, UserStore
from taskkeeper.domain.task import Task
from taskkeeper.domain.user import User, normalize_email
from taskkeeper.errors import ConflictError


def _copy_user(user: User) -> User:
    return User(user.email, id=user.id, created_at=user.created_at)


class InMemoryUserStore(UserStore):
    def __init__(self):
        self._users: dict[str, User] = {}

    async def find_by_id(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return _copy_user(user) if user else None

    async def find_by_email(self, email: str) -> Optional[User]:
        email = normalize_email(email)
        for user in self._users.values():
            if user.email == email:
                return _copy_user(user)
        return None

    async def save(self, user: User) -> User:
        for existing in self._users.values():
            if existing.email == user.email and existing.id != user.id:
                raise ConflictError("User already exists. Please log in.")
        self._users[user.id] = _copy_user(user)
        return user


class InMemoryTaskStore(TaskStore):
    def __init__(self):
        self._tasks: dict[str, Task] = {}
        self.writes = 0

    async def find_by_id(self, task_id: str) -> Optional[Task]:
        task = self._tasks.get(task_id)
        return task.copy() if task else None

    async def find_all_by_user_id(self, user_id: str) -> list[Task]:
        owned = [t for t in reversed(list(self._tasks.values())) if t.user_id == user_id]
        # Stable sort over reversed insertion order: ties stay newest first.
        owned.sort(key=lambda t: t.created_at, reverse=True)
        return [t.copy() for t in owned]

    async def save(self, task: Task) -> Task:
        self._tasks[task.id] = task.copy()
        self.writes += 1
        return task

    async def delete(self, task_id: str) -> None:
        self._tasks.pop(task_id, None)
        self.writes += 1


class InMemorySessionStateStore(SessionStateStore):
    def __init__(self):
        self._states: dict[str, SessionState] = {}
        self._consumed: dict[str, datetime] = {}

    async def get_state(self, subject_id: str) -> SessionState:
        return self._states.get(subject_id, SessionState())

    async def revoke(self, subject_id: str, at: datetime) -> SessionState:
        current = self._states.get(subject_id, SessionState())
        state = SessionState(generation=current.generation + 1, valid_since=at)
        self._states[subject_id] = state
        return state

    async def consume_bootstrap_token(self, token_id: str, expires_at: datetime) -> bool:
        now = datetime.now(timezone.utc)
        for expired in [k for k, exp in self._consumed.items() if exp < now]:
            del self._consumed[expired]
        # No await between the check and the write: atomic on one event loop.
        if token_id in self._consumed:
            return False
        self._consumed[token_id] = expires_at
        return True
