"""Error taxonomy and HTTP mapping tests."""

import pytest
import structlog
from httpx import ASGITransport, AsyncClient

from taskkeeper.config import Settings
from taskkeeper.container import build_memory_container
from taskkeeper.errors import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ErrorKind,
    InternalError,
    InvalidSession,
    NotFoundError,
    ValidationError,
    reraise,
)
from taskkeeper.main import create_app

logger = structlog.get_logger()


def test_with_context_keeps_existing_keys():
    err = NotFoundError("missing", {"task_id": "1"})
    err.with_context(task_id="2", user_id="u")
    assert err.context == {"task_id": "1", "user_id": "u"}


def test_reraise_passes_app_errors_through():
    original = ConflictError("taken")
    with pytest.raises(ConflictError) as exc:
        reraise(logger, original, "test.failed", "Doing things", operation="op")
    assert exc.value is original
    assert exc.value.context["operation"] == "op"


def test_reraise_wraps_unknown_errors():
    cause = KeyError("boom")
    with pytest.raises(InternalError) as exc:
        reraise(logger, cause, "test.failed", "Doing things", operation="op")
    assert exc.value.kind is ErrorKind.INTERNAL
    assert exc.value.message.startswith("Doing things: ")
    assert exc.value.__cause__ is cause


def _app_raising(exc: Exception, **settings_overrides):
    settings = Settings(environment="test", _env_file=None)
    if settings_overrides:
        settings = settings.model_copy(update=settings_overrides)
    app = create_app(container=build_memory_container(settings))

    async def boom():
        raise exc

    app.add_api_route("/boom", boom)
    return app


async def _get(app, path="/boom"):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        return await c.get(path)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error,status",
    [
        (ValidationError("bad"), 400),
        (AuthenticationError("who"), 401),
        (AuthorizationError("not yours"), 403),
        (NotFoundError("gone"), 404),
        (ConflictError("taken"), 409),
        (InternalError("broken"), 500),
    ],
)
async def test_error_kind_maps_to_status(error: AppError, status):
    r = await _get(_app_raising(error))
    assert r.status_code == status
    assert r.json() == {"message": error.message}


@pytest.mark.asyncio
async def test_invalid_session_clears_cookie():
    r = await _get(_app_raising(InvalidSession("expired")))
    assert r.status_code == 401
    assert any(h.startswith("__session=") for h in r.headers.get_list("set-cookie"))


@pytest.mark.asyncio
async def test_internal_message_hidden_outside_local():
    r = await _get(_app_raising(InternalError("db password is hunter2"), environment="production"))
    assert r.status_code == 500
    assert r.json() == {"message": "Internal Server Error"}


@pytest.mark.asyncio
async def test_unhandled_exception_becomes_500():
    r = await _get(_app_raising(RuntimeError("kaboom")))
    assert r.status_code == 500
    assert r.json() == {"message": "kaboom"}
