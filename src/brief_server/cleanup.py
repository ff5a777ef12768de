"""Expired-session cleanup CLI — ``brief-cleanup``.

Abandoned briefs stop being readable once their TTL passes, but the rows
stay in ``brief_sessions`` until this command removes them.  Intended for
cron jobs or one-off maintenance.

Examples::

    # Delete every expired session
    brief-cleanup

    # Keep expired rows for one more day (e.g. for debugging)
    brief-cleanup --grace-hours 24
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import timedelta

logger = logging.getLogger(__name__)


async def run_cleanup(*, grace_hours: int = 0) -> int:
    """Delete expired sessions and return the number of removed rows."""
    # Lazy imports to avoid loading DB machinery at module import time
    from brief_db.engine import dispose_engine
    from brief_db.repository import SqlSessionStore

    store = SqlSessionStore()
    try:
        affected = await store.purge_expired(grace=timedelta(hours=grace_hours))
        logger.info(
            "Cleanup complete: affected_rows=%d, grace_hours=%d", affected, grace_hours,
        )
        return affected
    finally:
        await dispose_engine()


def cli() -> None:
    """Console-script entry point: ``brief-cleanup``."""
    parser = argparse.ArgumentParser(
        prog="brief-cleanup",
        description="Delete expired brief sessions from the database.",
    )
    parser.add_argument(
        "--grace-hours",
        type=int,
        default=0,
        help="Only delete sessions that expired more than this many hours ago (default: 0)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    args = parser.parse_args()

    if args.grace_hours < 0:
        parser.error("--grace-hours must be >= 0")

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    affected = asyncio.run(run_cleanup(grace_hours=args.grace_hours))

    print(f"Affected rows: {affected}")
    sys.exit(0)
