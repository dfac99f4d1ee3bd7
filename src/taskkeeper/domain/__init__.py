"""Domain layer — entities and the persistence contracts use-cases rely on."""

from taskkeeper.domain.repositories import TaskStore, UserStore
from taskkeeper.domain.task import Task
from taskkeeper.domain.user import User

__all__ = ["Task", "TaskStore", "User", "UserStore"]
