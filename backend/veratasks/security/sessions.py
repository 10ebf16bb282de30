"""Per-session state: who is signed in and which task they are working on.

The active-task pointer is client-side bookkeeping, not a lock. Two
sessions of the same user each track their own active task; the store
does not enforce exclusivity across sessions.

A session lives no longer than its access token. The expiry comes from
the sign-in response (expires_in) or, for tokens resolved by lookup,
from the JWT `exp` claim.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _b64url_decode(raw: str) -> bytes:
    padding = "=" * (-len(raw) % 4)
    return base64.urlsafe_b64decode(raw + padding)


def token_expiry(access_token: str) -> datetime | None:
    """Read the `exp` claim of a JWT access token without verifying it.

    The backend verifies the token on lookup; this only bounds how long
    the resolved session is cached. Returns None for opaque tokens.
    """
    parts = access_token.split(".")
    if len(parts) != 3:
        return None
    try:
        claims = json.loads(_b64url_decode(parts[1]))
        return datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
    except (ValueError, KeyError, TypeError, OverflowError, OSError):
        return None


def expires_after(seconds: int | float, now: datetime | None = None) -> datetime:
    return (now or _utcnow()) + timedelta(seconds=seconds)


@dataclass
class UserSession:
    """One signed-in session (or the dev-mode session when auth is disabled)."""

    user_id: str
    email: str = ""
    access_token: str = ""
    active_task_id: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    expires_at: datetime | None = None  # None = never (dev session)

    def expired(self, now: datetime | None = None) -> bool:
        return self.expires_at is not None and (now or _utcnow()) >= self.expires_at


class SessionRegistry:
    """In-memory map of access token → UserSession.

    The dev session is shared by every unauthenticated request while auth
    is disabled. Expired sessions are purged whenever a new one is registered.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, UserSession] = {}
        self._dev_sessions: dict[str, UserSession] = {}

    def register(self, session: UserSession) -> UserSession:
        self.purge_expired()
        self._sessions[session.access_token] = session
        logger.info("Session opened for user=%s", session.user_id)
        return session

    def get(self, access_token: str) -> UserSession | None:
        return self._sessions.get(access_token)

    def drop(self, access_token: str) -> UserSession | None:
        session = self._sessions.pop(access_token, None)
        if session is not None:
            logger.info("Session closed for user=%s", session.user_id)
        return session

    def purge_expired(self, now: datetime | None = None) -> int:
        """Forget every expired session; returns how many were dropped."""
        now = now or _utcnow()
        stale = [token for token, s in self._sessions.items() if s.expired(now)]
        for token in stale:
            del self._sessions[token]
        if stale:
            logger.debug("Purged %d expired session(s)", len(stale))
        return len(stale)

    def dev_session(self, user_id: str) -> UserSession:
        if user_id not in self._dev_sessions:
            self._dev_sessions[user_id] = UserSession(user_id=user_id)
        return self._dev_sessions[user_id]

    def clear(self) -> None:
        self._sessions.clear()
        self._dev_sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)


session_registry = SessionRegistry()
