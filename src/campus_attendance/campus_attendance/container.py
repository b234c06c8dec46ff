from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .alerts.sink import AlertSink, LoggingAlertSink
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.percentage import PercentageCalculator
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import now_local
from .common.validators import parse_threshold
from .core.constants import DEFAULT_REVIEW_MAX_RETRIES, LOW_ATTENDANCE_THRESHOLD
from .corrections.mysql_correction_repository import MySQLCorrectionRequestRepository
from .corrections.repository import CorrectionRequestRepository
from .corrections.service import CorrectionService
from .courses.mysql_course_repository import MySQLCourseRepository
from .courses.repository import CourseRepository
from .database.connection import DatabaseConnection, DBConfig
from .enrollments.mysql_enrollment_repository import MySQLEnrollmentRepository
from .enrollments.repository import EnrollmentRepository
from .reports.mysql_report_repository import MySQLMonthlyReportRepository
from .reports.repository import MonthlyReportRepository
from .reports.service import ReportService
from .store.memory import InMemoryStore
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    courses_repo: CourseRepository
    enrollments_repo: EnrollmentRepository
    attendance_repo: AttendanceRepository
    corrections_repo: CorrectionRequestRepository
    reports_repo: MonthlyReportRepository
    alert_sink: AlertSink

    attendance_service: AttendanceService
    correction_service: CorrectionService
    report_service: ReportService


def _wire(
    *,
    conn: Optional[DatabaseConnection],
    users_repo: UserRepository,
    courses_repo: CourseRepository,
    enrollments_repo: EnrollmentRepository,
    attendance_repo: AttendanceRepository,
    corrections_repo: CorrectionRequestRepository,
    reports_repo: MonthlyReportRepository,
    alert_sink: Optional[AlertSink],
    threshold,
    max_retries: int,
    clock: Callable[[], datetime],
) -> Container:
    threshold = parse_threshold(threshold)
    alert_sink = alert_sink if alert_sink is not None else LoggingAlertSink()

    attendance_service = AttendanceService(
        attendance_repo,
        users_repo,
        courses_repo,
        alerts=alert_sink,
        calculator=PercentageCalculator(attendance_repo, threshold=threshold),
        clock=clock,
    )
    correction_service = CorrectionService(
        corrections_repo,
        attendance_repo,
        alerts=alert_sink,
        clock=clock,
        max_retries=max_retries,
    )
    report_service = ReportService(
        attendance_repo,
        reports_repo,
        enrollments_repo,
        courses_repo,
        alerts=alert_sink,
        threshold=threshold,
        clock=clock,
    )

    return Container(
        conn=conn,
        users_repo=users_repo,
        courses_repo=courses_repo,
        enrollments_repo=enrollments_repo,
        attendance_repo=attendance_repo,
        corrections_repo=corrections_repo,
        reports_repo=reports_repo,
        alert_sink=alert_sink,
        attendance_service=attendance_service,
        correction_service=correction_service,
        report_service=report_service,
    )


def build_container(
    *,
    db_config: dict,
    threshold=LOW_ATTENDANCE_THRESHOLD,
    max_retries: int = DEFAULT_REVIEW_MAX_RETRIES,
    alert_sink: Optional[AlertSink] = None,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return _wire(
        conn=conn,
        users_repo=MySQLUserRepository(conn),
        courses_repo=MySQLCourseRepository(conn),
        enrollments_repo=MySQLEnrollmentRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        corrections_repo=MySQLCorrectionRequestRepository(conn),
        reports_repo=MySQLMonthlyReportRepository(conn),
        alert_sink=alert_sink,
        threshold=threshold,
        max_retries=max_retries,
        clock=clock,
    )


def build_memory_container(
    store: Optional[InMemoryStore] = None,
    *,
    threshold=LOW_ATTENDANCE_THRESHOLD,
    max_retries: int = DEFAULT_REVIEW_MAX_RETRIES,
    alert_sink: Optional[AlertSink] = None,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    """Same wiring over the in-process store (tests, local runs without MySQL)."""
    store = store if store is not None else InMemoryStore()

    return _wire(
        conn=None,
        users_repo=store.users,
        courses_repo=store.courses,
        enrollments_repo=store.enrollments,
        attendance_repo=store.attendance,
        corrections_repo=store.corrections,
        reports_repo=store.reports,
        alert_sink=alert_sink,
        threshold=threshold,
        max_retries=max_retries,
        clock=clock,
    )
