"""Use-case layer — one class per business operation.

Each use-case is built with the stores it needs and exposes a single
`async execute(...)`. They orchestrate entities and stores, enforce task
ownership, and log + re-raise every failure with its operation context.
"""

from taskkeeper.usecases.tasks import AddTask, DeleteTask, GetTasks, TaskPatch, UpdateTask
from taskkeeper.usecases.users import CreateUser, GetUserByEmail, LoginUser

__all__ = [
    "AddTask",
    "CreateUser",
    "DeleteTask",
    "GetTasks",
    "GetUserByEmail",
    "LoginUser",
    "TaskPatch",
    "UpdateTask",
]
