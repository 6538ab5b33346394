#!/usr/bin/env python3
"""
Erase visitor sessions whose persona has not been updated recently.

Deletes every stored row (brochures, signals, conversation, persona) for
each expired session. Intended to run from cron.

Usage:
    python scripts/purge_expired_sessions.py [--days 30] [--dry-run]

Options:
    --days: Age cutoff in days (default: SESSION_MAX_AGE_DAYS)
    --dry-run: List expired sessions without deleting anything
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.config import get_settings
from app.core.logging import get_logger
from app.db.sessions import list_expired_sessions, purge_expired_sessions

logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Purge expired visitor sessions")
    parser.add_argument("--days", type=int, default=None, help="Age cutoff in days")
    parser.add_argument("--dry-run", action="store_true", help="List without deleting")
    args = parser.parse_args(argv)

    days = args.days if args.days is not None else get_settings().SESSION_MAX_AGE_DAYS
    if days < 1:
        logger.error(f"--days must be at least 1, got {days}")
        return 2

    try:
        if args.dry_run:
            expired = list_expired_sessions(days)
            logger.info(f"{len(expired)} sessions older than {days} days (dry run)")
            for session_id in expired:
                logger.info(f"  {session_id}")
            return 0

        erased = purge_expired_sessions(days)
        logger.info(f"Erased {erased} sessions older than {days} days")
        return 0
    except Exception as e:
        logger.error(f"Purge failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
