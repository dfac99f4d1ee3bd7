"""Session credentials — issue, verify, revoke.

Learn: After the identity provider vouches for a user once, we stop
asking it. The client gets an opaque, signed session credential (stored
in an HTTP-only cookie) and sends it on every request instead.

- issue(): accepts either a provider ID token or one of our own bootstrap
  tokens, and mints a session with the configured fixed lifetime
- verify(): signature, expiry, type, and the subject's current generation
- revoke_all(): bumps the generation, so every outstanding session of the
  subject fails verification from now on ("log out everywhere")
- mint_bootstrap_token(): a short-lived, single-use token that lets a
  brand-new account sign in right after sign-up without the client having
  to fetch a fresh ID token first

Session and bootstrap tokens are PyJWT HS256 tokens signed with
TASKKEEPER_SESSION_SECRET; the `type` claim keeps them apart.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog

from taskkeeper.auth.claims import Claims, SessionCredential
from taskkeeper.auth.identity import IdentityVerifier
from taskkeeper.auth.session_state import SessionStateStore
from taskkeeper.config import Settings
from taskkeeper.errors import InvalidCredential, InvalidSession

logger = structlog.get_logger()

SESSION_TOKEN_TYPE = "session"
BOOTSTRAP_TOKEN_TYPE = "bootstrap"
TOKEN_ISSUER = "taskkeeper"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _from_timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


class SessionManager:
    """Mints and checks session credentials for verified identities."""

    def __init__(
        self,
        identity: IdentityVerifier,
        state: SessionStateStore,
        *,
        secret: str,
        ttl: timedelta,
        bootstrap_ttl: timedelta = timedelta(minutes=5),
        algorithm: str = "HS256",
    ):
        self._identity = identity
        self._state = state
        self._secret = secret
        self._ttl = ttl
        self._bootstrap_ttl = bootstrap_ttl
        self._algorithm = algorithm

    @classmethod
    def from_settings(
        cls, settings: Settings, identity: IdentityVerifier, state: SessionStateStore
    ) -> "SessionManager":
        return cls(
            identity,
            state,
            secret=settings.session_secret,
            ttl=timedelta(seconds=settings.session_ttl_seconds),
            bootstrap_ttl=timedelta(seconds=settings.bootstrap_token_ttl_seconds),
            algorithm=settings.session_algorithm,
        )

    # ─── Issue ───────────────────────────────────────────

    async def issue(self, credential: str) -> SessionCredential:
        """Exchange an ID token or a bootstrap token for a session credential."""
        if self._is_bootstrap_token(credential):
            claims = await self._redeem_bootstrap_token(credential)
        else:
            claims = await self._identity.verify(credential)

        state = await self._state.get_state(claims.subject_id)
        issued_at = _utcnow()
        expires_at = issued_at + self._ttl
        payload = {
            "iss": TOKEN_ISSUER,
            "sub": claims.subject_id,
            "type": SESSION_TOKEN_TYPE,
            "gen": state.generation,
            "jti": uuid.uuid4().hex,
            "iat": issued_at.timestamp(),
            "exp": expires_at,
        }
        if claims.email:
            payload["email"] = claims.email
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)

        logger.info(
            "session.issued",
            user_id=claims.subject_id,
            expires_at=expires_at.isoformat(),
        )
        return SessionCredential(
            token=token,
            expires_at=expires_at,
            max_age_seconds=int(self._ttl.total_seconds()),
            claims=Claims(
                subject_id=claims.subject_id,
                email=claims.email,
                issued_at=issued_at,
                expires_at=expires_at,
            ),
        )

    # ─── Verify ──────────────────────────────────────────

    async def verify(self, token: str) -> Claims:
        """Verify a session credential. Raises InvalidSession on any rejection."""
        if not token or not isinstance(token, str):
            raise InvalidSession("Session credential is required.")

        try:
            payload = self._decode(token)
        except jwt.ExpiredSignatureError:
            raise InvalidSession("Session has expired.")
        except jwt.PyJWTError as e:
            raise InvalidSession(f"Invalid session: {e}")

        if payload.get("type") != SESSION_TOKEN_TYPE:
            raise InvalidSession("Invalid session: not a session credential.")

        subject_id = payload["sub"]
        state = await self._state.get_state(subject_id)
        if payload.get("gen") != state.generation:
            logger.info("session.revoked_presented", user_id=subject_id)
            raise InvalidSession("Session has been revoked.")

        return Claims(
            subject_id=subject_id,
            email=payload.get("email"),
            issued_at=_from_timestamp(payload["iat"]),
            expires_at=_from_timestamp(payload["exp"]),
        )

    # ─── Revoke ──────────────────────────────────────────

    async def revoke_all(self, subject_id: str) -> None:
        """Invalidate every outstanding session of `subject_id`."""
        state = await self._state.revoke(subject_id, _utcnow())
        logger.info("session.revoked_all", user_id=subject_id, generation=state.generation)

    # ─── Bootstrap tokens ────────────────────────────────

    async def mint_bootstrap_token(self, subject_id: str, email: Optional[str] = None) -> str:
        """Mint a single-use token that issue() accepts in place of an ID token."""
        issued_at = _utcnow()
        payload = {
            "iss": TOKEN_ISSUER,
            "sub": subject_id,
            "type": BOOTSTRAP_TOKEN_TYPE,
            "jti": uuid.uuid4().hex,
            "iat": issued_at.timestamp(),
            "exp": issued_at + self._bootstrap_ttl,
        }
        if email:
            payload["email"] = email
        logger.debug("session.bootstrap_minted", user_id=subject_id)
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def _is_bootstrap_token(self, credential: str) -> bool:
        if not credential or not isinstance(credential, str):
            return False
        try:
            unverified = jwt.decode(credential, options={"verify_signature": False})
        except jwt.PyJWTError:
            return False
        return (
            unverified.get("iss") == TOKEN_ISSUER
            and unverified.get("type") == BOOTSTRAP_TOKEN_TYPE
        )

    async def _redeem_bootstrap_token(self, token: str) -> Claims:
        try:
            payload = self._decode(token)
        except jwt.ExpiredSignatureError:
            raise InvalidCredential("Bootstrap token has expired.")
        except jwt.PyJWTError as e:
            raise InvalidCredential(f"Invalid bootstrap token: {e}")

        if payload.get("type") != BOOTSTRAP_TOKEN_TYPE:
            raise InvalidCredential("Invalid bootstrap token.")

        subject_id = payload["sub"]
        state = await self._state.get_state(subject_id)
        if state.valid_since is not None and payload["iat"] < state.valid_since.timestamp():
            raise InvalidCredential("Bootstrap token has been revoked.")

        consumed = await self._state.consume_bootstrap_token(
            payload["jti"], _from_timestamp(payload["exp"])
        )
        if not consumed:
            logger.warning("session.bootstrap_replayed", user_id=subject_id)
            raise InvalidCredential("Bootstrap token has already been used.")

        return Claims(
            subject_id=subject_id,
            email=payload.get("email"),
            issued_at=_from_timestamp(payload["iat"]),
            expires_at=_from_timestamp(payload["exp"]),
        )

    def _decode(self, token: str) -> dict:
        return jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            issuer=TOKEN_ISSUER,
            options={"require": ["sub", "iat", "exp", "jti"]},
        )
