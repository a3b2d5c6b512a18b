"""
User Sync Entry Point

Allows execution via: python -m apps.usersync
"""

import argparse
import logging
import sys

from apps.usersync.job import run_sync
from services.apiclient.errors import ClientError
from utils.config import get_settings
from utils.logging import setup_logging

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for a single sync run."""
    parser = argparse.ArgumentParser(description="Sync remote student records into local users")
    parser.add_argument("--user-id", type=int, default=None, help="Refresh a single local user")
    parser.add_argument("--test-mode", action="store_true", help="Stop paging after the first page")
    args = parser.parse_args(argv)

    settings = get_settings()
    if args.test_mode:
        settings = settings.model_copy(update={"API_TEST_MODE": True})

    setup_logging(level=settings.LOG_LEVEL, format_type=settings.LOG_FORMAT)

    try:
        result = run_sync(settings, user_id=args.user_id)
    except ClientError as e:
        logger.error(
            "User sync failed",
            extra={"stage": e.stage, "status_code": e.status_code, "error": e.message},
            exc_info=True,
        )
        return 1

    logger.info(
        "Processed %d users (%d fetched, %d skipped)",
        len(result.user_ids),
        result.fetched,
        result.skipped,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
