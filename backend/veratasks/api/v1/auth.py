"""Authentication endpoints — password sign-in against the hosted backend.

POST /api/v1/auth/sign-in   — exchange email/password for a session token
POST /api/v1/auth/sign-out  — revoke the token and forget the session
GET  /api/v1/auth/me        — the caller's identity
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from veratasks.api.deps import get_user_session
from veratasks.config import auth_enabled
from veratasks.middleware.auth import get_auth_client
from veratasks.security.sessions import UserSession, expires_after, session_registry

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


class SignInRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1)


class SignInResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: str
    email: str


class MeResponse(BaseModel):
    user_id: str
    email: str
    auth_enabled: bool
    active_task_id: str | None = None


@router.post("/sign-in", response_model=SignInResponse)
async def sign_in(req: SignInRequest) -> SignInResponse:
    client = get_auth_client()
    if not auth_enabled() or client is None:
        raise HTTPException(status_code=400, detail="Authentication is disabled (dev mode).")

    auth = await client.sign_in_with_password(req.email, req.password)
    session_registry.register(
        UserSession(
            user_id=auth.user_id,
            email=auth.email,
            access_token=auth.access_token,
            expires_at=expires_after(auth.expires_in),
        )
    )
    return SignInResponse(
        access_token=auth.access_token,
        expires_in=auth.expires_in,
        user_id=auth.user_id,
        email=auth.email,
    )


@router.post("/sign-out", status_code=204)
async def sign_out(session: UserSession = Depends(get_user_session)) -> None:
    """Forget the session locally; the backend revocation is best-effort."""
    if not session.access_token:
        return None
    session_registry.drop(session.access_token)
    client = get_auth_client()
    if client is not None:
        await client.sign_out(session.access_token)
    return None


@router.get("/me", response_model=MeResponse)
async def me(session: UserSession = Depends(get_user_session)) -> MeResponse:
    return MeResponse(
        user_id=session.user_id,
        email=session.email,
        auth_enabled=auth_enabled(),
        active_task_id=session.active_task_id,
    )
