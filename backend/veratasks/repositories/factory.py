"""Store selection: which repository implementation serves a session.

- memory   → one process-wide in-memory store (tests, demos)
- sqlite   → one process-wide SQLModel store on the configured database
- supabase → one store per session, carrying that session's access token
"""

from __future__ import annotations

import logging

from veratasks.config import StoreBackend, auth_enabled, settings
from veratasks.integrations.supabase import SupabaseClient
from veratasks.repositories.base import Store
from veratasks.repositories.memory import create_memory_store
from veratasks.repositories.sql import create_sql_store
from veratasks.repositories.supabase import create_supabase_store
from veratasks.security.sessions import UserSession

logger = logging.getLogger(__name__)


def build_supabase_client() -> SupabaseClient | None:
    """Client for the hosted backend, or None when it is not configured."""
    if not auth_enabled():
        return None
    return SupabaseClient(
        settings.supabase_url,
        settings.supabase_anon_key,
        timeout=settings.supabase_timeout_seconds,
    )


class StoreFactory:
    """Hands out the Store a given session should use."""

    def __init__(
        self,
        backend: StoreBackend,
        shared: Store | None = None,
        client: SupabaseClient | None = None,
    ) -> None:
        if backend == "supabase" and client is None:
            raise ValueError("store_backend=supabase requires SUPABASE_URL and SUPABASE_ANON_KEY")
        if backend != "supabase" and shared is None:
            raise ValueError(f"store_backend={backend} requires a shared store")
        self.backend = backend
        self._shared = shared
        self._client = client

    def for_session(self, session: UserSession) -> Store:
        if self.backend == "supabase":
            return create_supabase_store(self._client, session.access_token or None)
        return self._shared


def build_store_factory(backend: StoreBackend | None = None) -> StoreFactory:
    """Build the factory for the configured (or given) backend."""
    backend = backend or settings.store_backend

    if backend == "memory":
        factory = StoreFactory("memory", shared=create_memory_store())
    elif backend == "sqlite":
        from veratasks.db.database import create_db_and_tables, engine

        create_db_and_tables(engine)
        factory = StoreFactory("sqlite", shared=create_sql_store(engine))
    else:
        factory = StoreFactory("supabase", client=build_supabase_client())

    logger.info("Store backend: %s", backend)
    return factory
