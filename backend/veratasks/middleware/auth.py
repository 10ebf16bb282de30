"""Session authentication middleware.

Bearer-token sessions issued by POST /api/v1/auth/sign-in. Tokens are the
hosted backend's access tokens; a token this process has not seen yet is
resolved once against the backend's /auth/v1/user endpoint and cached in
the session registry until the token expires (an expired session is
dropped and answered with 401).

When the hosted backend is not configured, authentication is disabled
(development mode) and every request runs as the fixed dev user.

Exempt paths: /health, /docs, /openapi.json, /redoc, /, /api/v1/auth/sign-in
"""

from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from veratasks.config import auth_enabled, settings
from veratasks.engines.history import utcnow
from veratasks.errors import AuthenticationError, VeraTasksError
from veratasks.integrations.supabase import SupabaseClient
from veratasks.security.sessions import UserSession, expires_after, session_registry, token_expiry

logger = logging.getLogger(__name__)

# Paths that don't require authentication
_EXEMPT_PATHS = frozenset({
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/",
    "/api/v1/auth/sign-in",
})

# Module-level reference, set by main.py at startup
_client: SupabaseClient | None = None


def set_auth_client(client: SupabaseClient | None) -> None:
    """Wire up the hosted-backend client used to resolve unknown tokens."""
    global _client
    _client = client


def get_auth_client() -> SupabaseClient | None:
    return _client


class SessionAuthMiddleware(BaseHTTPMiddleware):
    """Attaches the caller's UserSession to request.state.user_session."""

    async def dispatch(self, request: Request, call_next):
        # Dev mode: no hosted backend configured → fixed dev user
        if not auth_enabled():
            request.state.user_session = session_registry.dev_session(settings.dev_user_id)
            return await call_next(request)

        if request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        token = self._extract_token(request)
        if token is None:
            return JSONResponse(
                status_code=401,
                content={"detail": "Missing authentication. Use Authorization: Bearer <token>"},
            )

        try:
            session = await self._resolve(token)
        except VeraTasksError as e:
            logger.warning(
                "Rejected token from %s on %s: %s",
                request.client.host if request.client else "unknown",
                request.url.path,
                e,
            )
            return JSONResponse(status_code=e.status_code, content={"detail": e.message})

        request.state.user_session = session
        return await call_next(request)

    @staticmethod
    def _extract_token(request: Request) -> str | None:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer ") and auth_header[7:]:
            return auth_header[7:]
        return None

    @staticmethod
    async def _resolve(token: str) -> UserSession:
        session = session_registry.get(token)
        if session is not None:
            if not session.expired():
                return session
            session_registry.drop(token)
            raise AuthenticationError("Session expired. Sign in again.")
        expiry = token_expiry(token)
        if expiry is not None and expiry <= utcnow():
            raise AuthenticationError("Session expired. Sign in again.")
        if _client is None:
            raise AuthenticationError("Unknown session. Sign in again.")

        user = await _client.get_user(token)
        return session_registry.register(
            UserSession(
                user_id=str(user.get("id", "")),
                email=str(user.get("email", "")),
                access_token=token,
                expires_at=expiry or expires_after(settings.session_ttl_seconds),
            )
        )
