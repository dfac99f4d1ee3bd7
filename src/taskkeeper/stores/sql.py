"""PostgreSQL-backed stores (async SQLAlchemy).

Learn: Each store holds the session factory built at startup and opens
one short session per call — no session outlives an operation, so
concurrent requests never share one. Every operation logs and re-raises
through `reraise`, so a database failure reaches the HTTP layer as an
InternalError carrying the operation context.

Rows that no longer satisfy the entity constraints are logged and
skipped instead of crashing the whole listing.
"""

from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskkeeper.auth.session_state import SessionState, SessionStateStore
from taskkeeper.db.models import BootstrapTokenRow, SessionStateRow, TaskRow, UserRow, utcnow
from taskkeeper.domain.repositories import TaskStore, UserStore
from taskkeeper.domain.task import Task
from taskkeeper.domain.user import User, normalize_email
from taskkeeper.errors import ConflictError, ValidationError, reraise

logger = structlog.get_logger()


def row_to_user(row: UserRow) -> User:
    return User(row.email, id=row.id, created_at=row.created_at)


def row_to_task(row: TaskRow) -> Optional[Task]:
    try:
        return Task(
            row.user_id,
            row.title,
            row.description,
            id=row.id,
            created_at=row.created_at,
            is_completed=row.is_completed,
        )
    except ValidationError as e:
        logger.error("store.invalid_task_row", task_id=row.id, error=e.message)
        return None


class SqlUserStore(UserStore):
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def find_by_id(self, user_id: str) -> Optional[User]:
        try:
            async with self._sessions() as db:
                row = await db.get(UserRow, user_id)
                return row_to_user(row) if row else None
        except SQLAlchemyError as e:
            reraise(logger, e, "store.user_find_failed", "Error finding user by ID", user_id=user_id)

    async def find_by_email(self, email: str) -> Optional[User]:
        try:
            async with self._sessions() as db:
                result = await db.execute(
                    select(UserRow).where(UserRow.email == normalize_email(email))
                )
                row = result.scalars().first()
                return row_to_user(row) if row else None
        except SQLAlchemyError as e:
            reraise(logger, e, "store.user_find_failed", "Error finding user by email")

    async def save(self, user: User) -> User:
        try:
            async with self._sessions() as db:
                row = UserRow(id=user.id, email=user.email, created_at=user.created_at)
                db.add(row)
                try:
                    await db.commit()
                except IntegrityError:
                    await db.rollback()
                    raise ConflictError("User already exists. Please log in.")
                await db.refresh(row)
                user.sync_created_at(row.created_at)
                logger.info("store.user_saved", user_id=user.id)
                return user
        except (SQLAlchemyError, ConflictError) as e:
            reraise(logger, e, "store.user_save_failed", "Error saving user", user_id=user.id)


class SqlTaskStore(TaskStore):
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def find_by_id(self, task_id: str) -> Optional[Task]:
        try:
            async with self._sessions() as db:
                row = await db.get(TaskRow, task_id)
                return row_to_task(row) if row else None
        except SQLAlchemyError as e:
            reraise(logger, e, "store.task_find_failed", "Error finding task by ID", task_id=task_id)

    async def find_all_by_user_id(self, user_id: str) -> list[Task]:
        try:
            async with self._sessions() as db:
                result = await db.execute(
                    select(TaskRow)
                    .where(TaskRow.user_id == user_id)
                    .order_by(TaskRow.created_at.desc())
                )
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            reraise(logger, e, "store.task_list_failed", "Error finding tasks by user ID", user_id=user_id)

        tasks = []
        for row in rows:
            task = row_to_task(row)
            if task is None:
                logger.warning("store.task_skipped", user_id=user_id, task_id=row.id)
                continue
            tasks.append(task)
        return tasks

    async def save(self, task: Task) -> Task:
        try:
            async with self._sessions() as db:
                await db.merge(
                    TaskRow(
                        id=task.id,
                        user_id=task.user_id,
                        title=task.title,
                        description=task.description,
                        created_at=task.created_at,
                        is_completed=task.is_completed,
                    )
                )
                await db.commit()
                logger.info("store.task_saved", task_id=task.id)
                return task
        except SQLAlchemyError as e:
            reraise(logger, e, "store.task_save_failed", "Error saving task", task_id=task.id)

    async def delete(self, task_id: str) -> None:
        try:
            async with self._sessions() as db:
                await db.execute(delete(TaskRow).where(TaskRow.id == task_id))
                await db.commit()
                logger.info("store.task_deleted", task_id=task_id)
        except SQLAlchemyError as e:
            reraise(logger, e, "store.task_delete_failed", "Error deleting task", task_id=task_id)


class SqlSessionStateStore(SessionStateStore):
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def get_state(self, subject_id: str) -> SessionState:
        try:
            async with self._sessions() as db:
                row = await db.get(SessionStateRow, subject_id)
        except SQLAlchemyError as e:
            reraise(logger, e, "store.session_state_failed", "Error reading session state", user_id=subject_id)
        if row is None:
            return SessionState()
        return SessionState(generation=row.generation, valid_since=row.valid_since)

    async def revoke(self, subject_id: str, at: datetime) -> SessionState:
        try:
            async with self._sessions() as db:
                result = await db.execute(
                    update(SessionStateRow)
                    .where(SessionStateRow.subject_id == subject_id)
                    .values(generation=SessionStateRow.generation + 1, valid_since=at)
                )
                if result.rowcount == 0:
                    db.add(SessionStateRow(subject_id=subject_id, generation=1, valid_since=at))
                try:
                    await db.commit()
                except IntegrityError:
                    # A concurrent first revocation inserted the row; bump it instead.
                    await db.rollback()
                    await db.execute(
                        update(SessionStateRow)
                        .where(SessionStateRow.subject_id == subject_id)
                        .values(generation=SessionStateRow.generation + 1, valid_since=at)
                    )
                    await db.commit()
                row = await db.get(SessionStateRow, subject_id, populate_existing=True)
                return SessionState(generation=row.generation, valid_since=row.valid_since)
        except SQLAlchemyError as e:
            reraise(logger, e, "store.session_revoke_failed", "Error revoking sessions", user_id=subject_id)

    async def consume_bootstrap_token(self, token_id: str, expires_at: datetime) -> bool:
        try:
            async with self._sessions() as db:
                await db.execute(
                    delete(BootstrapTokenRow).where(BootstrapTokenRow.expires_at < utcnow())
                )
                db.add(BootstrapTokenRow(token_id=token_id, expires_at=expires_at))
                try:
                    await db.commit()
                except IntegrityError:
                    await db.rollback()
                    return False
                return True
        except SQLAlchemyError as e:
            reraise(logger, e, "store.bootstrap_consume_failed", "Error consuming bootstrap token")
