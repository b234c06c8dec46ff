from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional

from ..alerts.sink import AlertSink, LoggingAlertSink, dispatch_alert
from ..attendance.model import AttendanceRecord
from ..attendance.percentage import percentage
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import month_bounds, now_local
from ..common.permissions import ensure_can_view_student, require_role
from ..common.validators import parse_threshold, require_id, require_month_year
from ..core.constants import LOW_ATTENDANCE_THRESHOLD
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import NotFoundError
from ..courses.repository import CourseRepository
from ..enrollments.repository import EnrollmentRepository
from .model import MonthlyReport, MonthlyTally
from .repository import MonthlyReportRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationSummary:
    month: int
    year: int
    reports: list[MonthlyReport] = field(default_factory=list)
    low_attendance: list[MonthlyReport] = field(default_factory=list)


def tally_month(
    *,
    student_id: int,
    course_id: int,
    month: int,
    year: int,
    records: Iterable[AttendanceRecord],
) -> MonthlyTally:
    """Count statuses; PRESENT and LATE both count as attended."""

    counts = Counter(r.status for r in records)
    total = sum(counts.values())
    present = counts[AttendanceStatus.PRESENT]
    late = counts[AttendanceStatus.LATE]
    return MonthlyTally(
        student_id=int(student_id),
        course_id=int(course_id),
        month=int(month),
        year=int(year),
        total_classes=total,
        present_count=present,
        absent_count=counts[AttendanceStatus.ABSENT],
        late_count=late,
        excused_count=counts[AttendanceStatus.EXCUSED],
        attendance_percentage=percentage(present + late, total),
    )


class ReportService:
    """Monthly roll-up of attendance per active enrollment.

    Re-running a month overwrites the existing rows (upsert on the natural
    key), so the job is safe to schedule repeatedly.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        reports: MonthlyReportRepository,
        enrollments: EnrollmentRepository,
        courses: CourseRepository,
        *,
        alerts: AlertSink | None = None,
        threshold: Decimal = LOW_ATTENDANCE_THRESHOLD,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._reports = reports
        self._enrollments = enrollments
        self._courses = courses
        self._alerts = alerts if alerts is not None else LoggingAlertSink()
        self._threshold = parse_threshold(threshold)
        self._clock = clock

    def generate_monthly_reports(self, *, current_role: Role, month: int, year: int) -> GenerationSummary:
        require_role(current_role, Role.ADMIN, message="Only admins can generate monthly reports")
        month, year = require_month_year(month, year)
        start, end = month_bounds(month, year)

        summary = GenerationSummary(month=month, year=year)
        for enrollment in self._enrollments.list_active():
            records = self._attendance.list_for_student_course_between(
                student_id=enrollment.student_id,
                course_id=enrollment.course_id,
                start_date=start,
                end_date=end,
            )
            tally = tally_month(
                student_id=enrollment.student_id,
                course_id=enrollment.course_id,
                month=month,
                year=year,
                records=records,
            )
            report = self._reports.upsert(tally=tally, generated_at=self._clock())
            summary.reports.append(report)

            if report.attendance_percentage < self._threshold:
                summary.low_attendance.append(report)
                dispatch_alert(
                    self._alerts.notify_low_attendance,
                    report.student_id,
                    report.course_id,
                    report.attendance_percentage,
                )

        logger.info(
            "Generated %s monthly reports for %02d/%s (%s below %s%%)",
            len(summary.reports),
            month,
            year,
            len(summary.low_attendance),
            self._threshold,
        )
        return summary

    def course_attendance_reports(
        self,
        *,
        current_role: Role,
        course_id: int,
        month: int,
        year: int,
    ) -> list[MonthlyReport]:
        require_role(current_role, Role.ADMIN, Role.FACULTY)
        course_id = require_id(course_id, "Course id")
        month, year = require_month_year(month, year)
        if not self._courses.get_by_id(course_id):
            raise NotFoundError(f"Course {course_id} not found")
        return list(self._reports.list_for_course_month(course_id=course_id, month=month, year=year))

    def reports_for_month(self, *, current_role: Role, month: int, year: int) -> list[MonthlyReport]:
        require_role(current_role, Role.ADMIN)
        month, year = require_month_year(month, year)
        return list(self._reports.list_for_month(month=month, year=year))

    def low_attendance_reports(
        self,
        *,
        current_role: Role,
        acting_user_id: int,
        student_id: int,
        threshold: Optional[Decimal] = None,
    ) -> list[MonthlyReport]:
        ensure_can_view_student(current_role, acting_user_id, student_id)
        limit = self._threshold if threshold is None else parse_threshold(threshold)
        return list(self._reports.list_below_threshold(student_id=require_id(student_id, "Student id"), threshold=limit))
