"""Monthly report batch job.

Usage: python scripts/generate_reports.py --month 3 --year 2024
Defaults to the previous calendar month. Runs with admin privileges.
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from datetime import date
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
PACKAGE_ROOT = REPO_ROOT / "src" / "campus_attendance"
if str(PACKAGE_ROOT) not in sys.path:
    sys.path.insert(0, str(PACKAGE_ROOT))

from campus_attendance.config import get_settings_module
from campus_attendance.container import build_container
from campus_attendance.core.enums import Role
from campus_attendance.core.exceptions import DomainError
from campus_attendance.main import configure_logging

logger = logging.getLogger("scripts.generate_reports")


def previous_month(today: date) -> tuple[int, int]:
    if today.month == 1:
        return 12, today.year - 1
    return today.month - 1, today.year


def parse_args(argv=None) -> argparse.Namespace:
    default_month, default_year = previous_month(date.today())
    parser = argparse.ArgumentParser(description="Generate monthly attendance reports for every active enrollment.")
    parser.add_argument("--month", type=int, default=default_month)
    parser.add_argument("--year", type=int, default=default_year)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    container = build_container(
        db_config=dict(settings.DB_CONFIG),
        threshold=getattr(settings, "LOW_ATTENDANCE_THRESHOLD", "75.00"),
        max_retries=int(getattr(settings, "REVIEW_MAX_RETRIES", 3)),
    )
    try:
        summary = container.report_service.generate_monthly_reports(
            current_role=Role.ADMIN,
            month=args.month,
            year=args.year,
        )
    except DomainError as e:
        logger.error("Report generation failed: %s", e)
        return 2

    logger.info(
        "Done: %s reports for %02d/%s, %s below threshold",
        len(summary.reports),
        summary.month,
        summary.year,
        len(summary.low_attendance),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
