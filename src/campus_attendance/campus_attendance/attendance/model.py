from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's status for one course on one calendar day.

    Unique per (student_id, course_id, attendance_date). ``version`` is bumped
    on every write and used for optimistic concurrency checks.
    """

    attendance_id: int
    student_id: int
    course_id: int
    attendance_date: date
    status: AttendanceStatus
    marked_by: int
    marked_at: datetime
    version: int = 1

    @property
    def key(self) -> tuple[int, int, date]:
        return (self.student_id, self.course_id, self.attendance_date)
