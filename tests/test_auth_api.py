"""Auth API tests.

Learn: Tests cover:
1. Sign-up → user created and logged in (session cookie set)
2. Duplicate sign-up → 409
3. Session login with a provider ID token
4. Logout → cookie cleared and every session revoked server-side
5. /auth/me and /auth/validate-session
6. /auth/user-by-email lookups
7. Sign-up bound to the provider's subject id
8. Case-insensitive email uniqueness
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import session_cookie_from, with_session
from taskkeeper.config import Settings
from taskkeeper.container import build_memory_container
from taskkeeper.main import create_app


def _email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


def _set_cookie_header(response) -> str:
    headers = [h for h in response.headers.get_list("set-cookie") if h.startswith("__session=")]
    assert headers, "no __session cookie in response"
    return headers[0].lower()


# ═══════════════════════════════════════════════════════════
# Sign-up
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_sign_up_creates_user_and_session(client, settings):
    email = _email("signup")
    r = await client.post("/auth/sign-up", json={"email": email})
    assert r.status_code == 201
    body = r.json()
    assert body["email"] == email
    assert body["id"]
    assert "createdAt" in body

    cookie = _set_cookie_header(r)
    assert "httponly" in cookie
    assert "samesite=lax" in cookie
    assert "path=/" in cookie
    assert f"max-age={settings.session_ttl_seconds}" in cookie
    assert "secure" not in cookie

    client.cookies.clear()
    me = await client.get("/auth/me", headers=with_session(session_cookie_from(r)))
    assert me.status_code == 200
    assert me.json() == {"id": body["id"], "email": email}


@pytest.mark.asyncio
async def test_sign_up_duplicate_email(client, sign_up):
    email = _email("dup")
    await sign_up(email)

    r = await client.post("/auth/sign-up", json={"email": email})
    assert r.status_code == 409
    assert r.json()["message"].startswith("User already exists")
    assert session_cookie_from(r) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{}, {"email": ""}, {"email": "not-an-email"}])
async def test_sign_up_validation(client, body):
    r = await client.post("/auth/sign-up", json=body)
    assert r.status_code == 400
    data = r.json()
    assert data["message"] == "Input validation failed"
    assert data["errors"]
    assert all({"field", "message"} <= set(e) for e in data["errors"])


# ═══════════════════════════════════════════════════════════
# Session login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_session_login(client, sign_up, id_token):
    email = _email("login")
    user, _ = await sign_up(email)

    r = await client.post("/auth/session-login", json={"idToken": id_token(user["id"], email)})
    assert r.status_code == 200
    assert r.json()["id"] == user["id"]
    token = session_cookie_from(r)
    assert token
    client.cookies.clear()

    me = await client.get("/auth/me", headers=with_session(token))
    assert me.status_code == 200
    assert me.json()["id"] == user["id"]


@pytest.mark.asyncio
async def test_session_login_unknown_user(client, id_token):
    r = await client.post(
        "/auth/session-login", json={"idToken": id_token("never-signed-up", "x@example.com")}
    )
    assert r.status_code == 404
    assert r.json()["message"] == "User not found. Please sign up first."
    assert session_cookie_from(r) is None


@pytest.mark.asyncio
async def test_session_login_invalid_token(client):
    r = await client.post("/auth/session-login", json={"idToken": "garbage"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_session_login_expired_token(client, sign_up, id_token):
    user, _ = await sign_up(_email("expired"))
    token = id_token(
        user["id"],
        issued_at=datetime.now(timezone.utc) - timedelta(hours=2),
        expires_in=timedelta(hours=1),
    )
    r = await client.post("/auth/session-login", json={"idToken": token})
    assert r.status_code == 401
    assert r.json()["message"] == "ID token has expired."


@pytest.mark.asyncio
async def test_session_login_missing_token(client):
    r = await client.post("/auth/session-login", json={})
    assert r.status_code == 400


# ═══════════════════════════════════════════════════════════
# Logout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_logout_without_session(client):
    r = await client.post("/auth/session-logout")
    assert r.status_code == 200
    assert r.json() == {"message": "Logout successful."}
    assert "max-age=0" in _set_cookie_header(r)


@pytest.mark.asyncio
async def test_logout_with_invalid_session(client):
    r = await client.post("/auth/session-logout", headers=with_session("garbage"))
    assert r.status_code == 200
    assert r.json() == {"message": "Logout successful."}


@pytest.mark.asyncio
async def test_logout_revokes_all_sessions(client, sign_up, id_token):
    email = _email("logout")
    user, first = await sign_up(email)
    earlier_id_token = id_token(
        user["id"], email, issued_at=datetime.now(timezone.utc) - timedelta(seconds=30)
    )
    r = await client.post("/auth/session-login", json={"idToken": id_token(user["id"], email)})
    second = session_cookie_from(r)
    client.cookies.clear()

    r = await client.post("/auth/session-logout", headers=with_session(first))
    assert r.status_code == 200
    assert "max-age=0" in _set_cookie_header(r)

    # Every session of the user is gone, not only the one that logged out.
    for token in (first, second):
        me = await client.get("/auth/me", headers=with_session(token))
        assert me.status_code == 401
        assert "max-age=0" in _set_cookie_header(me)

    # ID tokens obtained before the logout can't open a new session either.
    r = await client.post("/auth/session-login", json={"idToken": earlier_id_token})
    assert r.status_code == 401

    # A fresh sign-in works.
    r = await client.post("/auth/session-login", json={"idToken": id_token(user["id"], email)})
    assert r.status_code == 200


# ═══════════════════════════════════════════════════════════
# Current identity
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_without_cookie(client):
    r = await client.get("/auth/me")
    assert r.status_code == 401
    assert r.json() == {"message": "Unauthorized: No session cookie provided."}


@pytest.mark.asyncio
async def test_me_with_invalid_cookie(client):
    r = await client.get("/auth/me", headers=with_session("garbage"))
    assert r.status_code == 401
    assert r.json() == {"message": "Unauthorized: Invalid session."}
    assert "max-age=0" in _set_cookie_header(r)


@pytest.mark.asyncio
async def test_validate_session(client, sign_up):
    email = _email("validate")
    user, token = await sign_up(email)
    r = await client.get("/auth/validate-session", headers=with_session(token))
    assert r.status_code == 200
    assert r.json() == {"valid": True, "id": user["id"], "email": email}


# ═══════════════════════════════════════════════════════════
# Lookup
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_user_by_email(client, sign_up):
    email = _email("lookup")
    user, _ = await sign_up(email)
    r = await client.get(f"/auth/user-by-email/{email}")
    assert r.status_code == 200
    assert r.json() == {"id": user["id"]}


@pytest.mark.asyncio
async def test_user_by_email_missing(client):
    r = await client.get(f"/auth/user-by-email/{_email('missing')}")
    assert r.status_code == 404
    assert r.json() == {"message": "User not found."}


@pytest.mark.asyncio
async def test_user_by_email_malformed(client):
    r = await client.get("/auth/user-by-email/not-an-email")
    assert r.status_code == 400


# ═══════════════════════════════════════════════════════════
# Provider subject binding
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_sign_up_with_id_token_uses_provider_subject(client, id_token):
    """An account created with an ID token can log in with the provider's later tokens."""
    email = _email("carol")
    r = await client.post(
        "/auth/sign-up",
        json={"email": email, "idToken": id_token("provider-uid-123", email)},
    )
    assert r.status_code == 201
    assert r.json()["id"] == "provider-uid-123"
    client.cookies.clear()

    r = await client.post(
        "/auth/session-login", json={"idToken": id_token("provider-uid-123", email)}
    )
    assert r.status_code == 200
    assert r.json()["id"] == "provider-uid-123"


@pytest.mark.asyncio
async def test_sign_up_id_token_email_mismatch(client, id_token):
    r = await client.post(
        "/auth/sign-up",
        json={"email": _email("mine"), "idToken": id_token("provider-uid-9", _email("other"))},
    )
    assert r.status_code == 400
    assert r.json() == {"message": "Email does not match the ID token."}


@pytest.mark.asyncio
async def test_sign_up_same_subject_twice(client, id_token):
    r = await client.post(
        "/auth/sign-up", json={"email": _email("first"), "idToken": id_token("provider-uid-7")}
    )
    assert r.status_code == 201
    r = await client.post(
        "/auth/sign-up", json={"email": _email("second"), "idToken": id_token("provider-uid-7")}
    )
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_sign_up_invalid_id_token(client):
    r = await client.post("/auth/sign-up", json={"email": _email(), "idToken": "garbage"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_sign_up_requires_id_token_with_jwks_provider():
    """Generated ids are only allowed when this service mints the ID tokens itself."""
    settings = Settings(
        environment="test",
        identity_jwks_url="https://id.example.com/.well-known/jwks.json",
        _env_file=None,
    )
    container = build_memory_container(settings)
    app = create_app(container=container)
    email = _email("jwks")
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        r = await c.post("/auth/sign-up", json={"email": email})
    assert r.status_code == 400
    assert r.json() == {"message": "An ID token from the identity provider is required to sign up."}
    assert await container.users.find_by_email(email) is None


# ═══════════════════════════════════════════════════════════
# Email case
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_sign_up_email_is_case_insensitive(client, sign_up):
    suffix = uuid.uuid4().hex[:8]
    user, _ = await sign_up(f"Dave-{suffix}@Example.com")
    assert user["email"] == f"dave-{suffix}@example.com"

    r = await client.post("/auth/sign-up", json={"email": f"dave-{suffix}@example.com"})
    assert r.status_code == 409

    r = await client.get(f"/auth/user-by-email/DAVE-{suffix}@EXAMPLE.COM")
    assert r.status_code == 200
    assert r.json() == {"id": user["id"]}
