"""Persistence contracts for users and tasks.

Learn: Use-cases depend on these ABCs, never on SQLAlchemy. The composition
root picks a variant: taskkeeper.stores.sql for the real database,
taskkeeper.stores.memory for tests and local experiments.
"""

from abc import ABC, abstractmethod
from typing import Optional

from taskkeeper.domain.task import Task
from taskkeeper.domain.user import User


class UserStore(ABC):
    """Where signed-up users live. Keyed by the provider's subject id."""

    @abstractmethod
    async def find_by_id(self, user_id: str) -> Optional[User]:
        """Return the user with this subject id, or None."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[User]:
        """Return the user with this email, or None."""

    @abstractmethod
    async def save(self, user: User) -> User:
        """Persist a new user and return it (with the store's created_at)."""


class TaskStore(ABC):
    """Where tasks live."""

    @abstractmethod
    async def find_by_id(self, task_id: str) -> Optional[Task]:
        """Return the task, or None when it does not exist."""

    @abstractmethod
    async def find_all_by_user_id(self, user_id: str) -> list[Task]:
        """Return every task owned by `user_id`, newest first."""

    @abstractmethod
    async def save(self, task: Task) -> Task:
        """Create or overwrite the task and return it."""

    @abstractmethod
    async def delete(self, task_id: str) -> None:
        """Remove the task."""
