"""Taskkeeper CLI — run the server, manage the schema, poke at sessions.

Usage:
    taskkeeper serve                         # Run the API with uvicorn
    taskkeeper init-db                       # Create missing tables
    taskkeeper revoke-sessions USER_ID       # Log a user out everywhere
    taskkeeper mint-id-token USER_ID         # Development ID token (shared secret)
    taskkeeper tasks                         # List your tasks via the API

`tasks` talks to a running server: TASKKEEPER_API_URL picks the server and
TASKKEEPER_SESSION holds the session cookie value to send.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import os
import sys
from typing import Optional

import click
import httpx

from taskkeeper import __version__
from taskkeeper.config import settings

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("TASKKEEPER_API_URL", DEFAULT_API_URL).rstrip("/")


def _session_cookie() -> str:
    token = os.environ.get("TASKKEEPER_SESSION")
    if not token:
        click.secho("Error: set TASKKEEPER_SESSION to a session cookie value", fg="red", err=True)
        sys.exit(1)
    return token


def _client(session: str) -> httpx.AsyncClient:
    """Build an async HTTP client that presents the session cookie."""
    return httpx.AsyncClient(
        base_url=_api_url(),
        timeout=30.0,
        headers={"Cookie": f"{settings.session_cookie_name}={session}"},
    )


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. CliRunner inside an async test) by
    offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "-"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


@click.group()
@click.version_option(version=__version__, prog_name="taskkeeper")
def main():
    """Taskkeeper — per-user task lists behind cookie sessions."""


# ---------------------------------------------------------------------------
# Server and schema
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: TASKKEEPER_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: TASKKEEPER_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "taskkeeper.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level=settings.log_level,
    )


@main.command("init-db")
def init_db():
    """Create all tables that do not exist yet."""
    _run(_init_db_impl())
    click.secho("Schema ready.", fg="green")


async def _init_db_impl():
    from taskkeeper.db.engine import build_engine, create_schema

    engine = build_engine(settings)
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@main.command("revoke-sessions")
@click.argument("user_id")
def revoke_sessions(user_id: str):
    """Invalidate every session and ID token USER_ID currently holds."""
    _run(_revoke_sessions_impl(user_id))
    click.secho(f"Sessions revoked for {user_id}.", fg="green")


async def _revoke_sessions_impl(user_id: str):
    from taskkeeper.container import build_container

    container = build_container(settings)
    try:
        await container.sessions.revoke_all(user_id)
    finally:
        await container.close()


@main.command("mint-id-token")
@click.argument("user_id")
@click.option("--email", default=None, help="Email claim to include")
def mint_id_token(user_id: str, email: Optional[str]):
    """Print a development ID token for USER_ID (shared-secret setups only)."""
    from taskkeeper.auth.identity import mint_development_id_token

    try:
        token = mint_development_id_token(settings, user_id, email=email)
    except ValueError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)
    click.echo(token)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


@main.command()
def tasks():
    """List the tasks of the session in TASKKEEPER_SESSION."""
    session = _session_cookie()
    rows = _run(_tasks_impl(session))
    if not rows:
        click.echo("No tasks.")
        return
    for row in rows:
        row["status"] = "done" if row.get("isCompleted") else "pending"
    _print_table(rows, [
        ("ID", "id", 36),
        ("STATUS", "status", 8),
        ("TITLE", "title", 40),
        ("CREATED", "createdAt", 25),
    ])


async def _tasks_impl(session: str) -> list[dict]:
    async with _client(session) as c:
        r = await c.get("/api/tasks")
        if r.status_code == 401:
            click.secho("Error: session rejected; log in again.", fg="red", err=True)
            sys.exit(1)
        r.raise_for_status()
        return r.json()


if __name__ == "__main__":
    main()
