"""Health check endpoint — reports the configured store and whether it answers."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from veratasks.config import auth_enabled, settings

router = APIRouter()

VERSION = "1.0.0"


class HealthStatus(BaseModel):
    status: str  # "healthy" | "degraded" | "unhealthy"
    version: str
    checks: dict[str, dict]
    timestamp: datetime


@router.get("/health", response_model=HealthStatus)
async def health_check() -> HealthStatus:
    checks: dict[str, dict] = {}
    healthy = True
    has_warning = False

    # 1. Store
    backend = settings.store_backend
    if backend == "sqlite":
        try:
            from sqlalchemy import text

            from veratasks.db.database import engine

            with engine.connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
                wal = conn.execute(text("PRAGMA journal_mode")).fetchone()
                checks["store"] = {"status": "ok", "detail": f"sqlite journal_mode={wal[0]}"}
        except Exception as e:
            checks["store"] = {"status": "error", "detail": str(e)[:200]}
            healthy = False
    elif backend == "supabase":
        if auth_enabled():
            checks["store"] = {"status": "ok", "detail": "supabase configured"}
        else:
            checks["store"] = {"status": "error", "detail": "SUPABASE_URL / SUPABASE_ANON_KEY not set"}
            healthy = False
    else:
        checks["store"] = {"status": "ok", "detail": "in-memory (data is not persisted)"}
        has_warning = True

    # 2. Auth
    if auth_enabled():
        checks["auth"] = {"status": "ok", "detail": "session sign-in enabled"}
    else:
        checks["auth"] = {"status": "warning", "detail": f"dev mode (user={settings.dev_user_id})"}
        has_warning = True

    if healthy:
        status = "degraded" if has_warning else "healthy"
    else:
        status = "unhealthy"

    return HealthStatus(
        status=status,
        version=VERSION,
        checks=checks,
        timestamp=datetime.now(timezone.utc),
    )
