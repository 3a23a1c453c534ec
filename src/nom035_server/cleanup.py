"""Draft cleanup CLI — ``nom035-cleanup``.

Deletes ``assessment_progress`` rows whose token can no longer be used
(consumed or expired).  Intended for cron jobs or one-off maintenance.

Examples::

    # Delete every draft belonging to a consumed or expired token
    nom035-cleanup

    # Only drafts not touched for 30 days
    nom035-cleanup --days 30
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

logger = logging.getLogger(__name__)


async def run_cleanup(*, days: int = 0) -> int:
    """Execute the cleanup and return the number of deleted rows.

    Creates its own database session, runs the repository bulk method,
    and commits.  Safe to call from a CLI entry point or a scheduled task.
    """
    # Lazy imports to avoid loading DB machinery at module import time
    from nom035_db.engine import dispose_engine, session_scope
    from nom035_db.repository import AssessmentRepository

    try:
        async with session_scope() as db:
            affected = await AssessmentRepository().purge_stale_progress(
                db, older_than_days=days
            )

        logger.info("Cleanup complete: affected_rows=%d, days=%d", affected, days)
        return affected
    finally:
        await dispose_engine()


def cli() -> None:
    """Console-script entry point: ``nom035-cleanup``.

    Parses command-line arguments and runs the async cleanup function.
    """
    parser = argparse.ArgumentParser(
        prog="nom035-cleanup",
        description="Delete draft assessment progress for consumed or expired tokens.",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=int(os.getenv("PROGRESS_TTL_DAYS", "0")),
        help=(
            "Only drafts not updated for this many days "
            "(default: $PROGRESS_TTL_DAYS, or 0 = no age filter)."
        ),
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    args = parser.parse_args()
    if args.days < 0:
        parser.error("--days must be >= 0")

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    affected = asyncio.run(run_cleanup(days=args.days))

    print(f"Affected rows: {affected}")
    sys.exit(0)
