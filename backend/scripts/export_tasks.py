#!/usr/bin/env python3
"""Export a user's tasks from the configured store to a JSON backup file.

Usage:
    python scripts/export_tasks.py --user-id anonymous-user
    python scripts/export_tasks.py --user-id <uuid> --output backups/tasks.json
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from veratasks.config import settings
from veratasks.engines.history import utcnow
from veratasks.engines.stats import calculate_task_stats, format_duration
from veratasks.engines.transfer import export_filename
from veratasks.repositories.factory import build_store_factory
from veratasks.security.sessions import UserSession
from veratasks.services.tasks import TaskWorkflow

logger = logging.getLogger(__name__)


async def run(user_id: str, output: Path | None, access_token: str) -> Path:
    session = UserSession(user_id=user_id, access_token=access_token)
    store = build_store_factory().for_session(session)
    workflow = TaskWorkflow(store.tasks, session)

    body = await workflow.export_tasks()
    path = output or Path(export_filename(utcnow()))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")

    stats = calculate_task_stats(workflow.tasks)
    logger.info(
        "Exported %d task(s) (%d completed, %s tracked) to %s",
        stats.total_tasks, stats.completed_tasks, format_duration(stats.active_time), path,
    )
    return path


def main() -> None:
    parser = argparse.ArgumentParser(description="Export tasks to a VeraTasks backup file")
    parser.add_argument("--user-id", default=settings.dev_user_id, help="Owner of the tasks")
    parser.add_argument("--output", type=Path, default=None, help="Destination file")
    parser.add_argument("--access-token", default="", help="Session token (supabase backend only)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
    path = asyncio.run(run(args.user_id, args.output, args.access_token))
    print(path)


if __name__ == "__main__":
    main()
