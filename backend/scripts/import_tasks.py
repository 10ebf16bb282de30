#!/usr/bin/env python3
"""Import a VeraTasks backup file into the configured store.

Default mode merges: every imported task gets a fresh id and its project
link is dropped. --replace deletes the user's tasks first and keeps the
file's ids and project links.

Usage:
    python scripts/import_tasks.py veratasks-backup-2026-10-19.json --user-id anonymous-user
    python scripts/import_tasks.py backup.json --user-id <uuid> --replace
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from veratasks.config import settings
from veratasks.engines.stats import calculate_task_stats, format_duration
from veratasks.engines.transfer import parse_export
from veratasks.errors import VeraTasksError
from veratasks.repositories.factory import build_store_factory
from veratasks.security.sessions import UserSession
from veratasks.services.tasks import TaskWorkflow

logger = logging.getLogger(__name__)


async def run(path: Path, user_id: str, replace: bool, access_token: str) -> int:
    data = parse_export(path.read_bytes())
    session = UserSession(user_id=user_id, access_token=access_token)
    store = build_store_factory().for_session(session)
    workflow = TaskWorkflow(store.tasks, session)

    imported = await workflow.import_payload(data, replace=replace)
    stats = calculate_task_stats(workflow.tasks)
    logger.info(
        "Store now holds %d task(s), %s tracked in total",
        stats.total_tasks, format_duration(stats.active_time),
    )
    return imported


def main() -> None:
    parser = argparse.ArgumentParser(description="Import a VeraTasks backup file")
    parser.add_argument("path", type=Path, help="Export file to import")
    parser.add_argument("--user-id", default=settings.dev_user_id, help="Owner of the imported tasks")
    parser.add_argument("--replace", action="store_true", help="Delete existing tasks first")
    parser.add_argument("--access-token", default="", help="Session token (supabase backend only)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
    try:
        imported = asyncio.run(run(args.path, args.user_id, args.replace, args.access_token))
    except (OSError, VeraTasksError) as e:
        logger.error("Import failed: %s", e)
        sys.exit(1)
    print(f"Imported {imported} task(s)")


if __name__ == "__main__":
    main()
