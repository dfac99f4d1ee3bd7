"""Identity claims and session credential value objects."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Claims:
    """Verified identity for the lifetime of one request. Never persisted."""

    subject_id: str
    email: Optional[str] = None
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


@dataclass(frozen=True)
class SessionCredential:
    """A freshly minted session cookie value plus what the transport needs to set it."""

    token: str
    expires_at: datetime
    max_age_seconds: int
    claims: Claims
