"""CLI tests.

Learn: Click's CliRunner invokes commands in-process. The `tasks`
command is pointed at an in-memory app through httpx's ASGITransport by
swapping the module's client factory, so no server is needed.
"""

import asyncio

import jwt
import pytest
from click.testing import CliRunner
from httpx import ASGITransport, AsyncClient

from taskkeeper.cli import main as cli
from taskkeeper.config import settings
from taskkeeper.container import build_memory_container
from taskkeeper.main import create_app
from taskkeeper.usecases.tasks import AddTask
from taskkeeper.usecases.users import CreateUser


@pytest.fixture()
def runner():
    return CliRunner()


def test_version(runner):
    result = runner.invoke(cli.main, ["--version"])
    assert result.exit_code == 0
    assert "taskkeeper" in result.output


def test_mint_id_token(runner):
    result = runner.invoke(cli.main, ["mint-id-token", "sub-1", "--email", "a@example.com"])
    assert result.exit_code == 0
    payload = jwt.decode(
        result.output.strip(),
        settings.identity_shared_secret,
        algorithms=settings.identity_algorithms,
        options={"verify_aud": False},
    )
    assert payload["sub"] == "sub-1"
    assert payload["email"] == "a@example.com"


def test_tasks_requires_session(runner, monkeypatch):
    monkeypatch.delenv("TASKKEEPER_SESSION", raising=False)
    result = runner.invoke(cli.main, ["tasks"])
    assert result.exit_code == 1


@pytest.fixture()
def seeded_app():
    container = build_memory_container(settings)

    async def seed():
        user = await CreateUser(container.users).execute("cli@example.com")
        await AddTask(container.tasks).execute(user.id, "Water the plants", "")
        bootstrap = await container.sessions.mint_bootstrap_token(user.id, user.email)
        credential = await container.sessions.issue(bootstrap)
        return credential.token

    token = asyncio.run(seed())
    return create_app(container=container), token


def _asgi_client_factory(app):
    def _client(session: str) -> AsyncClient:
        return AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            headers={"Cookie": f"{settings.session_cookie_name}={session}"},
        )

    return _client


def test_tasks_lists_through_api(runner, monkeypatch, seeded_app):
    app, token = seeded_app
    monkeypatch.setenv("TASKKEEPER_SESSION", token)
    monkeypatch.setattr(cli, "_client", _asgi_client_factory(app))

    result = runner.invoke(cli.main, ["tasks"])
    assert result.exit_code == 0, result.output
    assert "Water the plants" in result.output
    assert "pending" in result.output


def test_tasks_with_rejected_session(runner, monkeypatch, seeded_app):
    app, _ = seeded_app
    monkeypatch.setenv("TASKKEEPER_SESSION", "garbage")
    monkeypatch.setattr(cli, "_client", _asgi_client_factory(app))

    result = runner.invoke(cli.main, ["tasks"])
    assert result.exit_code == 1
