"""Task API routes.

Learn: Routes translate HTTP to use-case calls and nothing else. The
acting user always comes from the session (CurrentIdentity), never from
the body or the URL, and the use-cases enforce ownership. Errors travel
up as AppErrors and are turned into status codes by the exception
handlers.
"""

import uuid

from fastapi import APIRouter, Depends, Response

from taskkeeper.auth.dependencies import CurrentIdentity, get_current_identity
from taskkeeper.container import Container, get_container
from taskkeeper.schemas.task import TaskCreate, TaskRead, TaskUpdate
from taskkeeper.usecases.tasks import AddTask, DeleteTask, GetTasks, UpdateTask

router = APIRouter(prefix="/api/tasks")


def _add_task(container: Container = Depends(get_container)) -> AddTask:
    return AddTask(container.tasks)


def _get_tasks(container: Container = Depends(get_container)) -> GetTasks:
    return GetTasks(container.tasks)


def _update_task(container: Container = Depends(get_container)) -> UpdateTask:
    return UpdateTask(container.tasks)


def _delete_task(container: Container = Depends(get_container)) -> DeleteTask:
    return DeleteTask(container.tasks)


@router.post("", response_model=TaskRead, status_code=201)
async def create_task(
    body: TaskCreate,
    identity: CurrentIdentity = Depends(get_current_identity),
    add_task: AddTask = Depends(_add_task),
):
    """Create a pending task owned by the caller."""
    task = await add_task.execute(identity.subject_id, body.title, body.description)
    return TaskRead.from_entity(task)


@router.get("", response_model=list[TaskRead])
async def list_tasks(
    identity: CurrentIdentity = Depends(get_current_identity),
    get_tasks: GetTasks = Depends(_get_tasks),
):
    """The caller's tasks, newest first."""
    tasks = await get_tasks.execute(identity.subject_id)
    return [TaskRead.from_entity(t) for t in tasks]


@router.put("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: uuid.UUID,
    body: TaskUpdate,
    identity: CurrentIdentity = Depends(get_current_identity),
    update: UpdateTask = Depends(_update_task),
):
    """Partially update a task (title, description, isCompleted)."""
    task = await update.execute(identity.subject_id, str(task_id), body.to_patch())
    return TaskRead.from_entity(task)


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_identity),
    delete: DeleteTask = Depends(_delete_task),
):
    await delete.execute(identity.subject_id, str(task_id))
    return Response(status_code=204)
