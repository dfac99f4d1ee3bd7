"""Auth API — sign-up, session login/logout, identity lookups.

Learn: Routes for the session lifecycle:
- POST /auth/sign-up → create the user (keyed by the ID token subject when
  one is sent), then auto-login via a bootstrap token
- POST /auth/session-login → provider ID token → session cookie
- POST /auth/session-logout → clear the cookie, revoke server-side if it was valid
- GET /auth/me → identity from the session cookie
- GET /auth/validate-session → same check, shaped for clients polling their session
- GET /auth/user-by-email/{email} → "log in or sign up?" branch for clients

The cookie is HTTP-only, SameSite=lax, and secure outside local
environments. Its lifetime is the configured session TTL, never chosen
per request.
"""

import structlog
from fastapi import APIRouter, Depends, Request, Response

from taskkeeper.auth.claims import SessionCredential
from taskkeeper.auth.dependencies import CurrentIdentity, get_current_identity
from taskkeeper.config import Settings
from taskkeeper.container import Container, get_container
from taskkeeper.domain.user import normalize_email
from taskkeeper.errors import AppError, AuthenticationError, NotFoundError, ValidationError
from taskkeeper.schemas.user import (
    Identity,
    Message,
    SessionLoginRequest,
    SessionStatus,
    SignUpRequest,
    UserId,
    UserRead,
)
from taskkeeper.usecases.users import CreateUser, GetUserByEmail, LoginUser

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


def _create_user(container: Container = Depends(get_container)) -> CreateUser:
    return CreateUser(container.users)


def _login_user(container: Container = Depends(get_container)) -> LoginUser:
    return LoginUser(container.users)


def _get_user_by_email(container: Container = Depends(get_container)) -> GetUserByEmail:
    return GetUserByEmail(container.users)


def set_session_cookie(response: Response, settings: Settings, credential: SessionCredential) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=credential.token,
        max_age=credential.max_age_seconds,
        httponly=True,
        secure=not settings.is_local,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=not settings.is_local,
        samesite="lax",
    )


# ─── Sign up ─────────────────────────────────────────────


@router.post("/sign-up", response_model=UserRead, status_code=201)
async def sign_up(
    body: SignUpRequest,
    response: Response,
    container: Container = Depends(get_container),
    create_user: CreateUser = Depends(_create_user),
):
    """Create a new user and log them in right away.

    With an `idToken` the account is keyed by the token's subject. Without
    one, a JWKS-backed deployment refuses: nothing the provider issues
    would ever carry a locally generated id.
    """
    subject_id = None
    if body.id_token:
        claims = await container.identity.verify(body.id_token)
        if claims.email and normalize_email(claims.email) != normalize_email(body.email):
            raise ValidationError("Email does not match the ID token.")
        subject_id = claims.subject_id
    elif not container.identity.issues_own_subjects:
        raise ValidationError("An ID token from the identity provider is required to sign up.")

    user = await create_user.execute(body.email, subject_id)

    bootstrap_token = await container.sessions.mint_bootstrap_token(user.id, user.email)
    credential = await container.sessions.issue(bootstrap_token)
    set_session_cookie(response, container.settings, credential)

    logger.info("auth.signed_up", user_id=user.id)
    return UserRead.from_entity(user)


# ─── Session login / logout ──────────────────────────────


@router.post("/session-login", response_model=UserRead)
async def session_login(
    body: SessionLoginRequest,
    response: Response,
    container: Container = Depends(get_container),
    login_user: LoginUser = Depends(_login_user),
):
    """Verify a provider ID token, require an existing user, set the session cookie."""
    claims = await container.identity.verify(body.id_token)
    user = await login_user.execute(claims.subject_id, claims.email)

    credential = await container.sessions.issue(body.id_token)
    set_session_cookie(response, container.settings, credential)

    logger.info("auth.logged_in", user_id=user.id)
    return UserRead.from_entity(user)


@router.post("/session-logout", response_model=Message)
async def session_logout(
    request: Request,
    response: Response,
    container: Container = Depends(get_container),
):
    """Always succeeds. A valid cookie also revokes the user's sessions everywhere."""
    settings = container.settings
    session_cookie = request.cookies.get(settings.session_cookie_name)
    clear_session_cookie(response, settings)

    if not session_cookie:
        logger.info("auth.logout_without_session")
        return Message(message="Logout successful.")

    try:
        claims = await container.sessions.verify(session_cookie)
    except AuthenticationError as e:
        logger.warning("auth.logout_invalid_session", error=e.message)
        return Message(message="Logout successful.")

    try:
        await container.sessions.revoke_all(claims.subject_id)
        logger.info("auth.logged_out", user_id=claims.subject_id)
    except AppError as e:
        # The client is logged out either way; the cookie is already cleared.
        logger.error("auth.logout_revoke_failed", user_id=claims.subject_id, error=e.message)

    return Message(message="Logout successful.")


# ─── Current identity ────────────────────────────────────


@router.get("/me", response_model=Identity)
async def get_me(identity: CurrentIdentity = Depends(get_current_identity)):
    """Get the current authenticated user's identity."""
    return Identity(id=identity.subject_id, email=identity.email)


@router.get("/validate-session", response_model=SessionStatus)
async def validate_session(identity: CurrentIdentity = Depends(get_current_identity)):
    return SessionStatus(valid=True, id=identity.subject_id, email=identity.email)


# ─── Lookup ──────────────────────────────────────────────


@router.get("/user-by-email/{email}", response_model=UserId)
async def get_user_by_email(
    email: str,
    get_user: GetUserByEmail = Depends(_get_user_by_email),
):
    """Tell a client whether to offer login or sign-up for `email`."""
    user = await get_user.execute(email)
    if user is None:
        raise NotFoundError("User not found.")
    return UserId(id=user.id)
