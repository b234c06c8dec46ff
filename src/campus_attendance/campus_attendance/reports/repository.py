from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from .model import MonthlyReport, MonthlyTally


class MonthlyReportRepository(Protocol):
    def upsert(self, *, tally: MonthlyTally, generated_at: datetime) -> MonthlyReport:
        """Insert or overwrite the report for (student, course, month, year)."""

        raise NotImplementedError

    def get_by_key(self, *, student_id: int, course_id: int, month: int, year: int) -> Optional[MonthlyReport]:
        raise NotImplementedError

    def list_for_course_month(self, *, course_id: int, month: int, year: int) -> Sequence[MonthlyReport]:
        raise NotImplementedError

    def list_for_month(self, *, month: int, year: int) -> Sequence[MonthlyReport]:
        raise NotImplementedError

    def list_below_threshold(self, *, student_id: int, threshold: Decimal) -> Sequence[MonthlyReport]:
        raise NotImplementedError
