"""CLI entry point for the recurring transfer generator.

Intended to run once a day from cron. Creating the current period's
reimbursements is idempotent, so repeated runs in the same period are no-ops.

Usage:
    python -m treasury.cli.generate_recurring
    python -m treasury.cli.generate_recurring --as-of 2025-03-01

Exit Codes:
    0 - Success: Due reimbursements generated (possibly none)
    1 - Failure: Error encountered; no reimbursements written

Logging:
    INFO level logs to both stdout and the configured log file
"""

import argparse
import logging
import sys
from datetime import date

from treasury.services.logging import setup_server_logging

logger = logging.getLogger(__name__)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD")


def main(argv: list[str] | None = None) -> int:
    """
    Generate recurring reimbursements for the period containing --as-of.

    Returns:
        Exit code: 0 for success, 1 for failure
    """
    parser = argparse.ArgumentParser(description="Generate due recurring transfers")
    parser.add_argument(
        "--as-of",
        type=_parse_date,
        default=None,
        help="Date whose period is generated (default: today)",
    )
    args = parser.parse_args(argv)
    as_of = args.as_of or date.today()

    setup_server_logging()
    logger.info(f"Starting recurring transfer generation for {as_of}...")

    try:
        from treasury.models import Base
        from treasury.services import SessionLocal, engine
        from treasury.services.recurring_service import RecurringTransferService

        Base.metadata.create_all(bind=engine)
        db = SessionLocal()
        try:
            count = RecurringTransferService(db).generate(as_of)
        finally:
            db.close()

        logger.info(f"Recurring transfer generation finished: {count} created")
        return 0

    except KeyboardInterrupt:
        logger.warning("Generation interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Recurring transfer generation failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
