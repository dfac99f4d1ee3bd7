"""Server-side session state — what makes revocation possible.

Learn: Session cookies are signed and self-contained, so on their own they
stay valid until they expire. Two pieces of per-subject state let the
server take them back:

- generation: every session embeds the generation current at issuance;
  revoking bumps it, so every older session stops matching.
- valid_since: the revocation timestamp. ID tokens and bootstrap tokens
  issued before it are rejected too.

Bootstrap tokens are single-use, so their ids are recorded on first use.
That record is the one atomic check-and-set in the system.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class SessionState:
    generation: int = 0
    valid_since: Optional[datetime] = None


class SessionStateStore(ABC):
    """Persistence contract for revocation state and consumed bootstrap tokens."""

    @abstractmethod
    async def get_state(self, subject_id: str) -> SessionState:
        """Current state; subjects never revoked get SessionState()."""

    @abstractmethod
    async def revoke(self, subject_id: str, at: datetime) -> SessionState:
        """Bump the generation and set valid_since to `at`."""

    @abstractmethod
    async def consume_bootstrap_token(self, token_id: str, expires_at: datetime) -> bool:
        """Record a bootstrap token as used. False when it was already used."""
