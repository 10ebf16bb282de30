"""Database setup — SQLite with WAL mode via SQLModel/SQLAlchemy.

Used when store_backend=sqlite: a local stand-in for the hosted backend's
tasks, task_history and projects collections. Alembic migrations under
backend/alembic are autogenerated from the same SQLModel tables.
"""

from __future__ import annotations

import os

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from veratasks.config import settings


def get_database_url() -> str:
    """Get database URL, ensuring the data directory exists."""
    url = settings.database_url
    if url.startswith("sqlite:///"):
        db_path = url.replace("sqlite:///", "")
        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
    return url


@event.listens_for(Engine, "connect")
def set_sqlite_wal(dbapi_connection, connection_record):
    """Enable WAL mode so list reads don't block on writes."""
    if type(dbapi_connection).__module__.split(".")[0] != "sqlite3":
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")  # Safe with WAL
    cursor.execute("PRAGMA busy_timeout=5000")    # 5s wait on lock
    cursor.close()


_url = get_database_url()
engine = create_engine(
    _url,
    echo=False,
    connect_args={"check_same_thread": False} if _url.startswith("sqlite") else {},
)


def create_db_and_tables(bind: Engine | None = None) -> None:
    """Create all tables defined by SQLModel metadata."""
    # Register the table classes on the metadata before create_all
    from veratasks.models.task import ProjectRecord, TaskHistoryRecord, TaskRecord  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)
