"""Test fixtures — a fresh in-memory app per test.

Learn: create_app() accepts a ready-made container, so tests hand it one
built from dict-backed stores instead of overriding dependencies. Every
test gets its own stores and its own session state, so nothing leaks
between tests and no database is needed. The lifespan never runs under
ASGITransport, which keeps Redis (and rate limiting) out of the picture.

Session cookies are passed explicitly: helpers clear the client's cookie
jar after sign-up/login and tests send `Cookie: __session=...` headers,
so it is always obvious which session a request carries.
"""

from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from taskkeeper.auth.identity import mint_development_id_token
from taskkeeper.config import Settings
from taskkeeper.container import build_memory_container
from taskkeeper.main import create_app

COOKIE_NAME = "__session"


@pytest.fixture()
def settings() -> Settings:
    return Settings(environment="test", _env_file=None)


@pytest.fixture()
def container(settings):
    return build_memory_container(settings)


@pytest.fixture()
def app(container):
    return create_app(container=container)


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def session_cookie_from(response) -> Optional[str]:
    """The __session value a response sets, or None (also None for deletions)."""
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        if name.strip() != COOKIE_NAME:
            continue
        value = rest.split(";", 1)[0].strip().strip('"')
        return value or None
    return None


def with_session(token: str) -> dict:
    return {"Cookie": f"{COOKIE_NAME}={token}"}


@pytest.fixture()
def id_token(settings):
    """Factory for development ID tokens signed with the shared test secret."""

    def _mint(subject_id: str, email: Optional[str] = None, **kwargs) -> str:
        return mint_development_id_token(settings, subject_id, email=email, **kwargs)

    return _mint


@pytest.fixture()
def sign_up(client):
    """Factory: sign up `email`, return (user body, session token)."""

    async def _sign_up(email: str):
        r = await client.post("/auth/sign-up", json={"email": email})
        assert r.status_code == 201, r.text
        token = session_cookie_from(r)
        assert token
        client.cookies.clear()
        return r.json(), token

    return _sign_up
