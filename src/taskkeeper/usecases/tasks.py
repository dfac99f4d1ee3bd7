"""Task use-cases — add, list, update, delete, with ownership enforced.

Learn: Ownership is checked the same way everywhere: load the task,
404 when missing, then compare the acting subject id with task.user_id
before looking at anything the caller sent. A non-owner gets an
AuthorizationError whether or not their patch would have been valid.

UpdateTask splits "what would change?" from "change it". compute_changes()
compares values (not just which fields are present); an empty result
means the request is a no-op and the store is never touched.

There is no locking: two concurrent updates of one task race, and the
last write wins.
"""

from dataclasses import dataclass
from typing import Any, Optional

import structlog

from taskkeeper.domain.repositories import TaskStore
from taskkeeper.domain.task import Task
from taskkeeper.errors import AuthorizationError, NotFoundError, reraise

logger = structlog.get_logger()


@dataclass(frozen=True)
class TaskPatch:
    """Partial update. None means "not sent"."""

    title: Optional[str] = None
    description: Optional[str] = None
    is_completed: Optional[bool] = None


def compute_changes(task: Task, patch: TaskPatch) -> dict[str, Any]:
    """Fields of `patch` whose value differs from `task`.

    Titles are compared after trimming, since that is how they are stored.
    """
    changes: dict[str, Any] = {}
    if patch.title is not None and patch.title.strip() != task.title:
        changes["title"] = patch.title
    if patch.description is not None and patch.description != task.description:
        changes["description"] = patch.description
    if patch.is_completed is not None and patch.is_completed != task.is_completed:
        changes["is_completed"] = patch.is_completed
    return changes


async def load_owned_task(tasks: TaskStore, user_id: str, task_id: str, action: str) -> Task:
    """Fetch a task for `action`, enforcing existence and ownership."""
    task = await tasks.find_by_id(task_id)
    if task is None:
        logger.warning("task.not_found", action=action, user_id=user_id, task_id=task_id)
        raise NotFoundError(f"Task not found for {action}.")
    if not task.is_owned_by(user_id):
        logger.error(
            "task.not_owner",
            action=action,
            user_id=user_id,
            task_id=task_id,
            owner_id=task.user_id,
        )
        raise AuthorizationError(f"User does not have permission to {action} this task.")
    return task


class AddTask:
    def __init__(self, tasks: TaskStore):
        self.tasks = tasks

    async def execute(self, user_id: str, title: str, description: str) -> Task:
        operation = "add_task"
        logger.info("task.add_attempt", operation=operation, user_id=user_id)
        try:
            task = Task(user_id, title, description)
            saved = await self.tasks.save(task)
            logger.info("task.added", operation=operation, user_id=user_id, task_id=saved.id)
            return saved
        except Exception as e:
            reraise(
                logger, e, "task.add_failed", "Error adding task",
                operation=operation, user_id=user_id,
            )


class GetTasks:
    def __init__(self, tasks: TaskStore):
        self.tasks = tasks

    async def execute(self, user_id: str) -> list[Task]:
        """All of the user's tasks, newest first."""
        operation = "get_tasks"
        try:
            tasks = await self.tasks.find_all_by_user_id(user_id)
        except Exception as e:
            reraise(
                logger, e, "task.list_failed", "Error getting tasks",
                operation=operation, user_id=user_id,
            )
        logger.info("task.listed", operation=operation, user_id=user_id, count=len(tasks))
        return tasks


class UpdateTask:
    def __init__(self, tasks: TaskStore):
        self.tasks = tasks

    async def execute(self, user_id: str, task_id: str, patch: TaskPatch) -> Task:
        operation = "update_task"
        logger.info("task.update_attempt", operation=operation, user_id=user_id, task_id=task_id)
        try:
            task = await load_owned_task(self.tasks, user_id, task_id, "update")

            changes = compute_changes(task, patch)
            if not changes:
                logger.info("task.update_noop", operation=operation, task_id=task_id)
                return task

            if "title" in changes or "description" in changes:
                task.update_details(
                    changes.get("title", task.title),
                    changes.get("description", task.description),
                )
            if "is_completed" in changes:
                if changes["is_completed"]:
                    task.mark_as_completed()
                else:
                    task.mark_as_pending()

            saved = await self.tasks.save(task)
            logger.info(
                "task.updated",
                operation=operation,
                user_id=user_id,
                task_id=task_id,
                fields=sorted(changes),
            )
            return saved
        except Exception as e:
            reraise(
                logger, e, "task.update_failed", "Error updating task",
                operation=operation, user_id=user_id, task_id=task_id,
            )


class DeleteTask:
    def __init__(self, tasks: TaskStore):
        self.tasks = tasks

    async def execute(self, user_id: str, task_id: str) -> None:
        operation = "delete_task"
        logger.info("task.delete_attempt", operation=operation, user_id=user_id, task_id=task_id)
        try:
            await load_owned_task(self.tasks, user_id, task_id, "delete")
            await self.tasks.delete(task_id)
            logger.info("task.deleted", operation=operation, user_id=user_id, task_id=task_id)
        except Exception as e:
            reraise(
                logger, e, "task.delete_failed", "Error deleting task",
                operation=operation, user_id=user_id, task_id=task_id,
            )
