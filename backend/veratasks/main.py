"""VeraTasks FastAPI Application.

Entry point for the backend server:

    uvicorn veratasks.main:app --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from veratasks.api.deps import set_store_factory
from veratasks.api.health import router as health_router
from veratasks.api.v1.auth import router as auth_router
from veratasks.api.v1.projects import router as projects_router
from veratasks.api.v1.stats import router as stats_router
from veratasks.api.v1.tasks import router as tasks_router
from veratasks.api.v1.transfer import router as transfer_router
from veratasks.config import auth_enabled, settings
from veratasks.errors import ValidationError, VeraTasksError
from veratasks.middleware.auth import SessionAuthMiddleware, set_auth_client
from veratasks.repositories.factory import build_store_factory, build_supabase_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logging.getLogger().setLevel(settings.log_level.upper())

    # Startup: pick the store (creates SQLite tables when needed)
    set_store_factory(build_store_factory())
    set_auth_client(build_supabase_client())
    if not auth_enabled():
        logger.info("Auth disabled (dev mode). All requests run as user=%s", settings.dev_user_id)

    yield

    set_store_factory(None)
    set_auth_client(None)


app = FastAPI(
    title="VeraTasks",
    description="Personal task tracker with time tracking per status",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware (order matters: last added = outermost)
app.add_middleware(SessionAuthMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.exception_handler(VeraTasksError)
async def app_error_handler(request: Request, exc: VeraTasksError):
    logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    content: dict = {"detail": exc.message}
    if isinstance(exc, ValidationError) and exc.field_errors:
        content["field_errors"] = exc.field_errors
    return JSONResponse(status_code=exc.status_code, content=content)


# Catch-all handler: internal details never reach the client
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    # Let FastAPI handle HTTPExceptions normally (preserves status codes like 404, 503)
    if isinstance(exc, HTTPException):
        raise exc
    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error."},
    )


# Routes
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(tasks_router)
app.include_router(projects_router)
app.include_router(stats_router)
app.include_router(transfer_router)


@app.get("/")
async def root():
    return {"name": "VeraTasks", "version": "1.0.0", "docs": "/docs"}
