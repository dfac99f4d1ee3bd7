"""FastAPI auth dependencies — the authorization gate.

Learn: get_current_identity runs before every protected route (it is
attached at the include_router level in taskkeeper.api). It reads the
session cookie, asks the SessionManager to verify it, and hands the
route a CurrentIdentity. It keeps no cache: every request is checked
from scratch.

A rejected cookie raises InvalidSession; the exception handler turns that
into a 401 that also tells the browser to drop the cookie.
"""

from typing import Optional

import structlog
from fastapi import Depends, Request

from taskkeeper.container import Container, get_container
from taskkeeper.errors import AuthenticationError, InvalidSession

logger = structlog.get_logger()


class CurrentIdentity:
    """The authenticated subject making the request.

    Learn: Use-cases receive `subject_id` as the acting user id and
    compare it against resource owners.
    """

    def __init__(self, subject_id: str, email: Optional[str] = None):
        self.subject_id = subject_id
        self.email = email


async def get_current_identity(
    request: Request,
    container: Container = Depends(get_container),
) -> CurrentIdentity:
    """Resolve the session cookie to an identity (401 when that fails)."""
    cookie_name = container.settings.session_cookie_name
    session_cookie = request.cookies.get(cookie_name)

    if not session_cookie:
        logger.warning("auth.no_session_cookie", path=request.url.path)
        raise AuthenticationError("Unauthorized: No session cookie provided.")

    try:
        claims = await container.sessions.verify(session_cookie)
    except AuthenticationError as e:
        logger.warning("auth.invalid_session", path=request.url.path, error=e.message)
        raise InvalidSession("Unauthorized: Invalid session.") from e

    structlog.contextvars.bind_contextvars(user_id=claims.subject_id)
    logger.debug("auth.authenticated", user_id=claims.subject_id)
    return CurrentIdentity(subject_id=claims.subject_id, email=claims.email)
