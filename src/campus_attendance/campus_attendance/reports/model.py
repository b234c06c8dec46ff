from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class MonthlyReport:
    """Derived, overwritable aggregate for one (student, course, month, year)."""

    report_id: int
    student_id: int
    course_id: int
    month: int
    year: int
    total_classes: int
    present_count: int
    absent_count: int
    late_count: int
    excused_count: int
    attendance_percentage: Decimal
    generated_at: datetime

    @property
    def key(self) -> tuple[int, int, int, int]:
        return (self.student_id, self.course_id, self.month, self.year)


@dataclass(frozen=True)
class MonthlyTally:
    """Counts for one student/course/month before they are persisted."""

    student_id: int
    course_id: int
    month: int
    year: int
    total_classes: int
    present_count: int
    absent_count: int
    late_count: int
    excused_count: int
    attendance_percentage: Decimal
