"""Identity verification — ID tokens from the external identity provider.

Learn: The provider signs a JWT (the "ID token") after the user signs in
on the client. We check:
1. Signature — against the provider's JWKS endpoint in production, or a
   shared HMAC secret for local development and tests
2. Expiry, and issuer/audience when configured
3. Revocation — a token authenticated before the subject's last
   revoke_all() is refused, even if it has not expired yet

Verification never writes anything.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog

from taskkeeper.auth.claims import Claims
from taskkeeper.auth.session_state import SessionStateStore
from taskkeeper.config import Settings
from taskkeeper.errors import InternalError, InvalidCredential

logger = structlog.get_logger()


class IdentityVerifier:
    """Verifies provider-issued bearer credentials into Claims."""

    def __init__(
        self,
        state: SessionStateStore,
        *,
        algorithms: list[str],
        shared_secret: Optional[str] = None,
        jwks_url: Optional[str] = None,
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
    ):
        if not shared_secret and not jwks_url:
            raise ValueError("IdentityVerifier needs a shared secret or a JWKS URL")
        self._state = state
        self._algorithms = algorithms
        self._shared_secret = shared_secret
        self._jwks_client = jwt.PyJWKClient(jwks_url) if jwks_url else None
        self._issuer = issuer
        self._audience = audience

    @classmethod
    def from_settings(cls, settings: Settings, state: SessionStateStore) -> "IdentityVerifier":
        return cls(
            state,
            algorithms=settings.identity_algorithms,
            shared_secret=None if settings.identity_jwks_url else settings.identity_shared_secret,
            jwks_url=settings.identity_jwks_url,
            issuer=settings.identity_issuer,
            audience=settings.identity_audience,
        )

    @property
    def issues_own_subjects(self) -> bool:
        """True when ID tokens are signed with our shared secret (development).

        Then this service mints the tokens itself and any subject id it picks
        is one the "provider" knows. With a JWKS provider, subject ids only
        ever come from verified ID tokens.
        """
        return self._jwks_client is None

    async def _signing_key(self, credential: str):
        if self._jwks_client is None:
            return self._shared_secret
        # PyJWKClient fetches over blocking urllib; keep it off the event loop.
        signing_key = await asyncio.to_thread(
            self._jwks_client.get_signing_key_from_jwt, credential
        )
        return signing_key.key

    async def verify(self, credential: str) -> Claims:
        """Verify an ID token. Raises InvalidCredential on any rejection."""
        if not credential or not isinstance(credential, str):
            raise InvalidCredential("Bearer credential is required.")

        try:
            key = await self._signing_key(credential)
            payload = jwt.decode(
                credential,
                key,
                algorithms=self._algorithms,
                audience=self._audience,
                issuer=self._issuer,
                options={
                    "require": ["sub", "iat", "exp"],
                    "verify_aud": self._audience is not None,
                },
            )
        except jwt.ExpiredSignatureError:
            logger.info("identity.token_expired")
            raise InvalidCredential("ID token has expired.")
        except jwt.PyJWKClientConnectionError as e:
            logger.error("identity.jwks_unavailable", error=str(e))
            raise InternalError("Identity provider keys are unavailable.") from e
        except jwt.PyJWTError as e:
            logger.info("identity.token_invalid", error=str(e))
            raise InvalidCredential(f"Invalid ID token: {e}")

        subject_id = payload["sub"]
        if not isinstance(subject_id, str) or not subject_id:
            raise InvalidCredential("Invalid ID token: empty subject.")

        # Revocation works at whole-second resolution, like the providers' own
        # "tokens valid after" markers.
        state = await self._state.get_state(subject_id)
        authenticated_at = payload.get("auth_time", payload["iat"])
        if state.valid_since is not None and authenticated_at < int(state.valid_since.timestamp()):
            logger.info("identity.token_revoked", user_id=subject_id)
            raise InvalidCredential("ID token has been revoked.")

        logger.debug("identity.verified", user_id=subject_id)
        return Claims(
            subject_id=subject_id,
            email=payload.get("email"),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


def mint_development_id_token(
    settings: Settings,
    subject_id: str,
    email: Optional[str] = None,
    expires_in: timedelta = timedelta(hours=1),
    issued_at: Optional[datetime] = None,
) -> str:
    """Sign an ID token with the shared development secret.

    Stands in for the identity provider's client SDK when running locally.
    Refused when a JWKS endpoint is configured.
    """
    if settings.identity_jwks_url:
        raise ValueError("Development ID tokens are unavailable when a JWKS URL is configured")

    issued_at = issued_at or datetime.now(timezone.utc)
    payload = {
        "sub": subject_id,
        "iat": issued_at,
        "auth_time": int(issued_at.timestamp()),
        "exp": issued_at + expires_in,
        "jti": uuid.uuid4().hex,
    }
    if email:
        payload["email"] = email
    if settings.identity_issuer:
        payload["iss"] = settings.identity_issuer
    if settings.identity_audience:
        payload["aud"] = settings.identity_audience
    return jwt.encode(
        payload,
        settings.identity_shared_secret,
        algorithm=settings.identity_algorithms[0],
    )
