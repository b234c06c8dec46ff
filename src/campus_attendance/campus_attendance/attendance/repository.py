from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_by_key(self, *, student_id: int, course_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def upsert(
        self,
        *,
        student_id: int,
        course_id: int,
        attendance_date: date,
        status: AttendanceStatus,
        marked_by: int,
        marked_at: datetime,
    ) -> AttendanceRecord:
        """Insert or overwrite the record for the composite key.

        Implementations must guarantee a single row per key even under
        concurrent calls (unique constraint or lock).
        """

        raise NotImplementedError

    def list_for_student(self, *, student_id: int, course_id: Optional[int] = None) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_student_course_between(
        self,
        *,
        student_id: int,
        course_id: int,
        start_date: date,
        end_date: date,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def count_for_student_course(
        self,
        *,
        student_id: int,
        course_id: int,
        status: Optional[AttendanceStatus] = None,
    ) -> int:
        raise NotImplementedError
