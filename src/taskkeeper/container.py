"""Composition root — every long-lived collaborator, built once.

Learn: The HTTP layer never constructs stores or auth services itself.
create_app() builds a Container at startup (PostgreSQL variant by
default, in-memory for tests) and stores it on `app.state.container`;
dependencies read it from there. Swapping persistence is a matter of
passing a different container, not of patching modules.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine

from taskkeeper.auth.identity import IdentityVerifier
from taskkeeper.auth.session_state import SessionStateStore
from taskkeeper.auth.sessions import SessionManager
from taskkeeper.config import Settings
from taskkeeper.db.engine import build_engine, build_session_factory
from taskkeeper.domain.repositories import TaskStore, UserStore
from taskkeeper.stores.memory import (
    InMemorySessionStateStore,
    InMemoryTaskStore,
    InMemoryUserStore,
)
from taskkeeper.stores.sql import SqlSessionStateStore, SqlTaskStore, SqlUserStore


@dataclass
class Container:
    settings: Settings
    users: UserStore
    tasks: TaskStore
    session_state: SessionStateStore
    identity: IdentityVerifier
    sessions: SessionManager
    engine: Optional[AsyncEngine] = None

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()


def _assemble(
    settings: Settings,
    users: UserStore,
    tasks: TaskStore,
    session_state: SessionStateStore,
    engine: Optional[AsyncEngine] = None,
) -> Container:
    identity = IdentityVerifier.from_settings(settings, session_state)
    sessions = SessionManager.from_settings(settings, identity, session_state)
    return Container(
        settings=settings,
        users=users,
        tasks=tasks,
        session_state=session_state,
        identity=identity,
        sessions=sessions,
        engine=engine,
    )


def build_container(settings: Settings) -> Container:
    """PostgreSQL-backed container. The engine connects on first query."""
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    return _assemble(
        settings,
        users=SqlUserStore(session_factory),
        tasks=SqlTaskStore(session_factory),
        session_state=SqlSessionStateStore(session_factory),
        engine=engine,
    )


def build_memory_container(settings: Settings) -> Container:
    """Dict-backed container for tests and throwaway local runs."""
    return _assemble(
        settings,
        users=InMemoryUserStore(),
        tasks=InMemoryTaskStore(),
        session_state=InMemorySessionStateStore(),
    )


def get_container(request: Request) -> Container:
    """FastAPI dependency — the container built by create_app()."""
    return request.app.state.container
