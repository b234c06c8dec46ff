from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence

from ..alerts.sink import AlertSink, LoggingAlertSink, dispatch_alert
from ..common.datetime_utils import coerce_date, now_local
from ..common.permissions import ensure_can_view_student, require_role
from ..common.validators import require_id
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import DomainError, NotFoundError, ValidationError
from ..courses.repository import CourseRepository
from ..database.mysql_base import STORAGE_ERRORS
from ..users.repository import UserRepository
from .model import AttendanceRecord
from .percentage import PercentageCalculator
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BulkItemFailure:
    student_id: object
    status: object
    error: Exception

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass(frozen=True)
class BulkMarkResult:
    saved: list[AttendanceRecord] = field(default_factory=list)
    failures: list[BulkItemFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def parse_status(value) -> AttendanceStatus:
    if isinstance(value, AttendanceStatus):
        return value
    try:
        return AttendanceStatus(str(value or "").strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown attendance status: {value!r}")


class AttendanceService:
    """Records attendance marks and answers per-student attendance queries."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        courses: CourseRepository,
        *,
        alerts: AlertSink | None = None,
        calculator: PercentageCalculator | None = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._users = users
        self._courses = courses
        self._alerts = alerts if alerts is not None else LoggingAlertSink()
        self._calculator = calculator or PercentageCalculator(attendance)
        self._clock = clock

    def _require_course(self, course_id: int) -> None:
        if not self._courses.get_by_id(course_id):
            raise NotFoundError(f"Course {course_id} not found")

    def _require_student(self, student_id: int) -> None:
        user = self._users.get_by_id(student_id)
        if not user or user.role != Role.STUDENT:
            raise NotFoundError(f"Student {student_id} not found")

    def mark_attendance(
        self,
        *,
        current_role: Role,
        faculty_id: int,
        course_id: int,
        student_id: int,
        attendance_date: date | str,
        status: AttendanceStatus | str,
    ) -> AttendanceRecord:
        require_role(current_role, Role.FACULTY, Role.ADMIN, message="Only faculty can mark attendance")

        faculty_id = require_id(faculty_id, "Faculty id")
        course_id = require_id(course_id, "Course id")
        student_id = require_id(student_id, "Student id")
        day = coerce_date(attendance_date)
        new_status = parse_status(status)

        self._require_course(course_id)
        self._require_student(student_id)

        record = self._attendance.upsert(
            student_id=student_id,
            course_id=course_id,
            attendance_date=day,
            status=new_status,
            marked_by=faculty_id,
            marked_at=self._clock(),
        )
        logger.info(
            "Marked %s for student=%s course=%s date=%s (by=%s, version=%s)",
            record.status.value,
            student_id,
            course_id,
            day.isoformat(),
            faculty_id,
            record.version,
        )

        dispatch_alert(self._alerts.notify_attendance_changed, record)
        return record

    def mark_bulk_attendance(
        self,
        *,
        current_role: Role,
        faculty_id: int,
        course_id: int,
        student_ids: Sequence[int],
        attendance_date: date | str,
        statuses: Sequence[AttendanceStatus | str],
    ) -> BulkMarkResult:
        """Mark a whole class; each (student, status) pair is an independent unit.

        Mismatched list lengths reject the call before anything is written.
        Per-item domain and storage errors are collected in ``failures``
        unchanged; the remaining pairs are still attempted.
        """

        require_role(current_role, Role.FACULTY, Role.ADMIN, message="Only faculty can mark attendance")

        student_ids = list(student_ids or [])
        statuses = list(statuses or [])
        if len(student_ids) != len(statuses):
            raise ValidationError(
                f"Got {len(student_ids)} students but {len(statuses)} statuses; nothing was recorded"
            )

        result = BulkMarkResult()
        for student_id, status in zip(student_ids, statuses):
            try:
                record = self.mark_attendance(
                    current_role=current_role,
                    faculty_id=faculty_id,
                    course_id=course_id,
                    student_id=student_id,
                    attendance_date=attendance_date,
                    status=status,
                )
            except DomainError as e:
                result.failures.append(BulkItemFailure(student_id=student_id, status=status, error=e))
                continue
            except STORAGE_ERRORS as e:
                logger.error("Bulk mark for course=%s student=%s failed in storage: %s", course_id, student_id, e)
                result.failures.append(BulkItemFailure(student_id=student_id, status=status, error=e))
                continue
            result.saved.append(record)

        if result.failures:
            logger.warning(
                "Bulk mark for course=%s: %s saved, %s failed",
                course_id,
                len(result.saved),
                len(result.failures),
            )
        return result

    def get_record(self, *, attendance_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(require_id(attendance_id, "Attendance id"))
        if not record:
            raise NotFoundError(f"Attendance record {attendance_id} not found")
        return record

    def find_record(self, *, student_id: int, course_id: int, attendance_date: date | str) -> Optional[AttendanceRecord]:
        return self._attendance.get_by_key(
            student_id=require_id(student_id, "Student id"),
            course_id=require_id(course_id, "Course id"),
            attendance_date=coerce_date(attendance_date),
        )

    def get_student_attendance(
        self,
        *,
        current_role: Role,
        acting_user_id: int,
        student_id: int,
        course_id: Optional[int] = None,
    ) -> list[AttendanceRecord]:
        ensure_can_view_student(current_role, acting_user_id, student_id)
        if course_id is not None:
            self._require_course(int(course_id))
        return list(self._attendance.list_for_student(student_id=int(student_id), course_id=course_id))

    def calculate_attendance_percentage(
        self,
        *,
        current_role: Role,
        acting_user_id: int,
        student_id: int,
        course_id: int,
    ) -> Decimal:
        ensure_can_view_student(current_role, acting_user_id, student_id)
        return self._calculator.calculate_percentage(int(student_id), int(course_id))

    def has_low_attendance(
        self,
        *,
        current_role: Role,
        acting_user_id: int,
        student_id: int,
        course_id: int,
        threshold: Decimal | None = None,
    ) -> bool:
        ensure_can_view_student(current_role, acting_user_id, student_id)
        return self._calculator.has_low_attendance(int(student_id), int(course_id), threshold)
