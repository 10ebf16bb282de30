"""Supabase client — PostgREST data access and GoTrue password auth over httpx.

The hosted backend owns authentication, storage and row-level security;
this client only shapes requests and translates failures:

- network errors / timeouts        → TransportError
- non-2xx data responses           → TransportError (status attached)
- rejected credentials / token     → AuthenticationError

Nothing is retried. A failed call surfaces to the caller, who decides
whether to re-issue it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from veratasks.errors import AuthenticationError, TransportError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 10.0
_USER_AGENT = "VeraTasks/1.0"


@dataclass
class AuthSession:
    """Result of a successful password sign-in."""

    user_id: str
    email: str
    access_token: str
    refresh_token: str = ""
    expires_in: int = 3600


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
    return str(body)[:200]


class SupabaseClient:
    """Async client for a Supabase project's REST and auth endpoints."""

    def __init__(self, url: str, anon_key: str, timeout: float = _DEFAULT_TIMEOUT) -> None:
        self._base_url = url.rstrip("/")
        self._anon_key = anon_key
        self._timeout = timeout

    @property
    def rest_url(self) -> str:
        return f"{self._base_url}/rest/v1"

    @property
    def auth_url(self) -> str:
        return f"{self._base_url}/auth/v1"

    def _headers(self, access_token: str | None, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {access_token or self._anon_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": _USER_AGENT,
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                return await client.request(method, url, headers=headers, params=params, json=json)
        except httpx.HTTPError as e:
            logger.warning("Supabase %s %s failed: %s", method, url, e)
            raise TransportError(f"Backend unreachable: {e}") from e

    # === PostgREST ===

    async def rest(
        self,
        method: str,
        table: str,
        *,
        access_token: str | None,
        params: dict[str, str] | None = None,
        json: Any = None,
        returning: bool = False,
    ) -> list[dict[str, Any]]:
        """Run one PostgREST call. Returns affected/selected rows (empty when not requested)."""
        prefer = "return=representation" if returning else None
        if method == "POST" and not returning:
            prefer = "return=minimal"
        resp = await self._send(
            method,
            f"{self.rest_url}/{table}",
            headers=self._headers(access_token, prefer),
            params=params,
            json=json,
        )
        if resp.status_code >= 400:
            detail = _error_detail(resp)
            logger.warning("Supabase %s %s → HTTP %d: %s", method, table, resp.status_code, detail)
            raise TransportError(
                f"{method} {table} failed (HTTP {resp.status_code}): {detail}",
                status=resp.status_code,
            )
        if not resp.content:
            return []
        data = resp.json()
        return data if isinstance(data, list) else [data]

    # === GoTrue auth ===

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        resp = await self._send(
            "POST",
            f"{self.auth_url}/token",
            headers=self._headers(None),
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if resp.status_code in (400, 401, 422):
            raise AuthenticationError(_error_detail(resp) or "Invalid login credentials")
        if resp.status_code >= 400:
            raise TransportError(
                f"Sign-in failed (HTTP {resp.status_code}): {_error_detail(resp)}",
                status=resp.status_code,
            )

        body = resp.json()
        user = body.get("user") or {}
        return AuthSession(
            user_id=str(user.get("id", "")),
            email=str(user.get("email", email)),
            access_token=str(body.get("access_token", "")),
            refresh_token=str(body.get("refresh_token", "")),
            expires_in=int(body.get("expires_in", 3600)),
        )

    async def sign_out(self, access_token: str) -> None:
        """Revoke the session. Failures are logged only; the local session is dropped regardless."""
        try:
            resp = await self._send("POST", f"{self.auth_url}/logout", headers=self._headers(access_token))
        except TransportError as e:
            logger.warning("Sign-out request failed: %s", e)
            return
        if resp.status_code >= 400:
            logger.warning("Sign-out returned HTTP %d: %s", resp.status_code, _error_detail(resp))

    async def get_user(self, access_token: str) -> dict[str, Any]:
        """Resolve an access token to its user. Raises AuthenticationError if it is not valid."""
        resp = await self._send("GET", f"{self.auth_url}/user", headers=self._headers(access_token))
        if resp.status_code in (401, 403):
            raise AuthenticationError("Session expired. Sign in again.")
        if resp.status_code >= 400:
            raise TransportError(
                f"User lookup failed (HTTP {resp.status_code}): {_error_detail(resp)}",
                status=resp.status_code,
            )
        return resp.json()
