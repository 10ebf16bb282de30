"""VeraTasks configuration — store selection, hosted backend credentials, defaults."""

from typing import Literal

from pydantic_settings import BaseSettings

StoreBackend = Literal["sqlite", "supabase", "memory"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Which repository implementation backs the API
    store_backend: StoreBackend = "sqlite"

    # Local database (store_backend=sqlite)
    database_url: str = "sqlite:///data/veratasks.db"

    # Hosted backend (Supabase). Empty URL or key = auth disabled (dev mode)
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_timeout_seconds: float = 10.0

    # Cache lifetime for a looked-up token that carries no `exp` claim
    session_ttl_seconds: int = 3600

    # Dev mode identity: every request acts as this user when auth is disabled
    dev_user_id: str = "anonymous-user"

    # CORS (comma-separated origins)
    cors_origins: str = "http://localhost:5173"

    # Defaults
    default_project_color: str = "#3b82f6"

    # Logging
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()


def auth_enabled() -> bool:
    """Sign-in is only possible when the hosted backend is configured."""
    return bool(settings.supabase_url and settings.supabase_anon_key)
