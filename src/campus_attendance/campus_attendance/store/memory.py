"""In-process implementation of every repository protocol.

Used by the test-suite and for local runs without MySQL. A single re-entrant
lock guards all tables, which serializes writes per key the same way the
unique constraints do in ``database/schema.sql``.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..core.enums import AttendanceStatus, RequestStatus
from ..corrections.model import ApprovalOutcome, CorrectionRequest
from ..corrections.repository import CorrectionRequestRepository
from ..courses.model import Course
from ..courses.repository import CourseRepository
from ..enrollments.model import Enrollment
from ..enrollments.repository import EnrollmentRepository
from ..reports.model import MonthlyReport, MonthlyTally
from ..reports.repository import MonthlyReportRepository
from ..users.model import User
from ..users.repository import UserRepository


class InMemoryStore:
    def __init__(
        self,
        *,
        users: Iterable[User] = (),
        courses: Iterable[Course] = (),
        enrollments: Iterable[Enrollment] = (),
    ):
        self.lock = threading.RLock()
        self.users_by_id: dict[int, User] = {u.user_id: u for u in users}
        self.courses_by_id: dict[int, Course] = {c.course_id: c for c in courses}
        self.enrollment_rows: list[Enrollment] = list(enrollments)

        self.records_by_key: dict[tuple[int, int, date], AttendanceRecord] = {}
        self.records_by_id: dict[int, AttendanceRecord] = {}
        self.requests_by_id: dict[int, CorrectionRequest] = {}
        self.reports_by_key: dict[tuple[int, int, int, int], MonthlyReport] = {}
        self._next_ids = {"attendance": 0, "request": 0, "report": 0}

        self.attendance = InMemoryAttendanceRepository(self)
        self.corrections = InMemoryCorrectionRequestRepository(self)
        self.reports = InMemoryMonthlyReportRepository(self)
        self.users = InMemoryUserRepository(self)
        self.courses = InMemoryCourseRepository(self)
        self.enrollments = InMemoryEnrollmentRepository(self)

    def next_id(self, table: str) -> int:
        with self.lock:
            self._next_ids[table] += 1
            return self._next_ids[table]

    # Directory/enrollment seeding helpers
    def add_user(self, user: User) -> None:
        with self.lock:
            self.users_by_id[user.user_id] = user

    def add_course(self, course: Course) -> None:
        with self.lock:
            self.courses_by_id[course.course_id] = course

    def enroll(self, student_id: int, course_id: int, *, active: bool = True) -> None:
        with self.lock:
            self.enrollment_rows.append(Enrollment(student_id=int(student_id), course_id=int(course_id), active=active))


class InMemoryAttendanceRepository(AttendanceRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        return self._store.records_by_id.get(int(attendance_id))

    def get_by_key(self, *, student_id: int, course_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        return self._store.records_by_key.get((int(student_id), int(course_id), attendance_date))

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
        key = (int(student_id), int(course_id), attendance_date)
        with self._store.lock:
            existing = self._store.records_by_key.get(key)
            if existing:
                record = replace(
                    existing,
                    status=status,
                    marked_by=int(marked_by),
                    marked_at=marked_at,
                    version=existing.version + 1,
                )
            else:
                record = AttendanceRecord(
                    attendance_id=self._store.next_id("attendance"),
                    student_id=key[0],
                    course_id=key[1],
                    attendance_date=attendance_date,
                    status=status,
                    marked_by=int(marked_by),
                    marked_at=marked_at,
                )
            self._store.records_by_key[key] = record
            self._store.records_by_id[record.attendance_id] = record
            return record

    def list_for_student(self, *, student_id: int, course_id: Optional[int] = None) -> Sequence[AttendanceRecord]:
        with self._store.lock:
            items = [
                r
                for r in self._store.records_by_id.values()
                if r.student_id == int(student_id) and (course_id is None or r.course_id == int(course_id))
            ]
        items.sort(key=lambda r: (-r.attendance_date.toordinal(), r.course_id))
        return items

    def list_for_student_course_between(
        self,
        *,
        student_id: int,
        course_id: int,
        start_date: date,
        end_date: date,
    ) -> Sequence[AttendanceRecord]:
        with self._store.lock:
            items = [
                r
                for r in self._store.records_by_id.values()
                if r.student_id == int(student_id)
                and r.course_id == int(course_id)
                and start_date <= r.attendance_date <= end_date
            ]
        items.sort(key=lambda r: r.attendance_date)
        return items

    def count_for_student_course(
        self,
        *,
        student_id: int,
        course_id: int,
        status: Optional[AttendanceStatus] = None,
    ) -> int:
        return sum(
            1
            for r in self.list_for_student(student_id=student_id, course_id=course_id)
            if status is None or r.status == status
        )


class InMemoryCorrectionRequestRepository(CorrectionRequestRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_by_id(self, *, request_id: int) -> Optional[CorrectionRequest]:
        return self._store.requests_by_id.get(int(request_id))

    def find_pending(self, *, attendance_id: int, requested_by: int) -> Optional[CorrectionRequest]:
        with self._store.lock:
            for req in self._store.requests_by_id.values():
                if (
                    req.attendance_id == int(attendance_id)
                    and req.requested_by == int(requested_by)
                    and req.status == RequestStatus.PENDING
                ):
                    return req
        return None

    def create_pending(
        self,
        *,
        attendance_id: int,
        requested_by: int,
        reason: str,
        requested_at: datetime,
    ) -> Optional[int]:
        with self._store.lock:
            if self.find_pending(attendance_id=attendance_id, requested_by=requested_by):
                return None
            request_id = self._store.next_id("request")
            self._store.requests_by_id[request_id] = CorrectionRequest(
                request_id=request_id,
                attendance_id=int(attendance_id),
                requested_by=int(requested_by),
                reason=reason,
                status=RequestStatus.PENDING,
                requested_at=requested_at,
            )
            return request_id

    def decide(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        reviewed_by: int,
        review_comments: Optional[str],
        reviewed_at: datetime,
    ) -> bool:
        with self._store.lock:
            req = self._store.requests_by_id.get(int(request_id))
            if not req or req.status != RequestStatus.PENDING:
                return False
            self._store.requests_by_id[req.request_id] = replace(
                req,
                status=status,
                reviewed_by=int(reviewed_by),
                review_comments=review_comments,
                reviewed_at=reviewed_at,
            )
            return True

    def approve(
        self,
        *,
        request_id: int,
        reviewed_by: int,
        review_comments: Optional[str],
        reviewed_at: datetime,
        attendance_id: int,
        expected_version: int,
        status: AttendanceStatus,
    ) -> ApprovalOutcome:
        with self._store.lock:
            record = self._store.records_by_id.get(int(attendance_id))
            if not record or record.version != int(expected_version):
                return ApprovalOutcome.STALE_RECORD
            req = self._store.requests_by_id.get(int(request_id))
            if not req or req.status != RequestStatus.PENDING:
                return ApprovalOutcome.NOT_PENDING

            record = replace(record, status=status, version=record.version + 1)
            self._store.records_by_key[record.key] = record
            self._store.records_by_id[record.attendance_id] = record
            self._store.requests_by_id[req.request_id] = replace(
                req,
                status=RequestStatus.APPROVED,
                reviewed_by=int(reviewed_by),
                review_comments=review_comments,
                reviewed_at=reviewed_at,
            )
            return ApprovalOutcome.APPLIED

    def list_pending_for_marker(self, *, faculty_id: int, limit: int = 500) -> Sequence[CorrectionRequest]:
        with self._store.lock:
            items = [
                req
                for req in self._store.requests_by_id.values()
                if req.status == RequestStatus.PENDING
                and (rec := self._store.records_by_id.get(req.attendance_id)) is not None
                and rec.marked_by == int(faculty_id)
            ]
        items.sort(key=lambda r: (r.requested_at, r.request_id))
        return items[: int(limit)]

    def list_for_student(self, *, student_id: int, limit: int = 500) -> Sequence[CorrectionRequest]:
        with self._store.lock:
            items = [r for r in self._store.requests_by_id.values() if r.requested_by == int(student_id)]
        items.sort(key=lambda r: (r.requested_at, r.request_id), reverse=True)
        return items[: int(limit)]


class InMemoryMonthlyReportRepository(MonthlyReportRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    def upsert(self, *, tally: MonthlyTally, generated_at: datetime) -> MonthlyReport:
        key = (tally.student_id, tally.course_id, tally.month, tally.year)
        with self._store.lock:
            existing = self._store.reports_by_key.get(key)
            report = MonthlyReport(
                report_id=existing.report_id if existing else self._store.next_id("report"),
                student_id=tally.student_id,
                course_id=tally.course_id,
                month=tally.month,
                year=tally.year,
                total_classes=tally.total_classes,
                present_count=tally.present_count,
                absent_count=tally.absent_count,
                late_count=tally.late_count,
                excused_count=tally.excused_count,
                attendance_percentage=tally.attendance_percentage,
                generated_at=generated_at,
            )
            self._store.reports_by_key[key] = report
            return report

    def get_by_key(self, *, student_id: int, course_id: int, month: int, year: int) -> Optional[MonthlyReport]:
        return self._store.reports_by_key.get((int(student_id), int(course_id), int(month), int(year)))

    def _select(self, predicate) -> list[MonthlyReport]:
        with self._store.lock:
            return [r for r in self._store.reports_by_key.values() if predicate(r)]

    def list_for_course_month(self, *, course_id: int, month: int, year: int) -> Sequence[MonthlyReport]:
        items = self._select(lambda r: r.course_id == int(course_id) and r.month == int(month) and r.year == int(year))
        return sorted(items, key=lambda r: r.student_id)

    def list_for_month(self, *, month: int, year: int) -> Sequence[MonthlyReport]:
        items = self._select(lambda r: r.month == int(month) and r.year == int(year))
        return sorted(items, key=lambda r: (r.course_id, r.student_id))

    def list_below_threshold(self, *, student_id: int, threshold: Decimal) -> Sequence[MonthlyReport]:
        items = self._select(lambda r: r.student_id == int(student_id) and r.attendance_percentage < threshold)
        return sorted(items, key=lambda r: (-r.year, -r.month, r.course_id))


class InMemoryUserRepository(UserRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._store.users_by_id.get(int(user_id))


class InMemoryCourseRepository(CourseRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_by_id(self, course_id: int) -> Optional[Course]:
        return self._store.courses_by_id.get(int(course_id))


class InMemoryEnrollmentRepository(EnrollmentRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    def list_active(self) -> Sequence[Enrollment]:
        with self._store.lock:
            return [e for e in self._store.enrollment_rows if e.active]
