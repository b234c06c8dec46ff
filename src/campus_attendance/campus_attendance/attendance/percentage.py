from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from ..common.validators import parse_threshold
from ..core.constants import LOW_ATTENDANCE_THRESHOLD, PERCENT_QUANTUM
from ..core.enums import AttendanceStatus
from .repository import AttendanceRepository

ZERO_PERCENT = Decimal("0.00")


def percentage(numerator: int, denominator: int) -> Decimal:
    """numerator * 100 / denominator, half-up to 2 places; 0.00 when denominator is 0."""
    if denominator <= 0:
        return ZERO_PERCENT
    value = Decimal(int(numerator) * 100) / Decimal(int(denominator))
    return value.quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)


class PercentageCalculator:
    """Attendance ratio over every stored record of a student in a course.

    Only PRESENT counts towards the numerator here; the monthly report also
    credits LATE (see ``ReportService``).
    """

    def __init__(self, attendance: AttendanceRepository, *, threshold: Decimal = LOW_ATTENDANCE_THRESHOLD):
        self._attendance = attendance
        self._threshold = parse_threshold(threshold)

    @property
    def threshold(self) -> Decimal:
        return self._threshold

    def calculate_percentage(self, student_id: int, course_id: int) -> Decimal:
        total = self._attendance.count_for_student_course(student_id=int(student_id), course_id=int(course_id))
        if total == 0:
            return ZERO_PERCENT
        present = self._attendance.count_for_student_course(
            student_id=int(student_id),
            course_id=int(course_id),
            status=AttendanceStatus.PRESENT,
        )
        return percentage(present, total)

    def has_low_attendance(self, student_id: int, course_id: int, threshold: Decimal | None = None) -> bool:
        limit = self._threshold if threshold is None else parse_threshold(threshold)
        return self.calculate_percentage(student_id, course_id) < limit
