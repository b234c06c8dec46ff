from __future__ import annotations

import threading
from datetime import date, datetime
from decimal import Decimal

from campus_attendance.core.enums import AttendanceStatus, RequestStatus
from campus_attendance.corrections.model import ApprovalOutcome
from campus_attendance.reports.model import MonthlyTally
from campus_attendance.store.memory import InMemoryStore

DAY = date(2024, 4, 1)
AT = datetime(2024, 4, 1, 9, 0)


def _upsert(store, status=AttendanceStatus.PRESENT, **kwargs):
    args = dict(student_id=1, course_id=1, attendance_date=DAY, status=status, marked_by=10, marked_at=AT)
    args.update(kwargs)
    return store.attendance.upsert(**args)


def test_concurrent_marks_for_one_key_store_one_record():
    store = InMemoryStore()
    statuses = [AttendanceStatus.PRESENT, AttendanceStatus.ABSENT] * 25
    threads = [threading.Thread(target=_upsert, args=(store, s)) for s in statuses]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store.records_by_id) == 1
    record = store.attendance.get_by_key(student_id=1, course_id=1, attendance_date=DAY)
    assert record.version == len(statuses)


def _approve(store, rec, request_id, expected_version):
    return store.corrections.approve(
        request_id=request_id,
        reviewed_by=10,
        review_comments=None,
        reviewed_at=AT,
        attendance_id=rec.attendance_id,
        expected_version=expected_version,
        status=AttendanceStatus.PRESENT,
    )


def test_approve_writes_request_and_record_together():
    store = InMemoryStore()
    rec = _upsert(store, status=AttendanceStatus.ABSENT)
    request_id = store.corrections.create_pending(
        attendance_id=rec.attendance_id, requested_by=1, reason="was there", requested_at=AT
    )

    assert _approve(store, rec, request_id, expected_version=2) == ApprovalOutcome.STALE_RECORD
    assert store.corrections.get_by_id(request_id=request_id).status == RequestStatus.PENDING
    assert store.attendance.get_by_id(rec.attendance_id).status == AttendanceStatus.ABSENT

    assert _approve(store, rec, request_id, expected_version=1) == ApprovalOutcome.APPLIED
    current = store.attendance.get_by_id(rec.attendance_id)
    assert (current.status, current.version) == (AttendanceStatus.PRESENT, 2)
    assert store.corrections.get_by_id(request_id=request_id).status == RequestStatus.APPROVED
    # The key index tracks the same object
    assert store.attendance.get_by_key(student_id=1, course_id=1, attendance_date=DAY) == current

    assert _approve(store, current, request_id, expected_version=2) == ApprovalOutcome.NOT_PENDING
    assert store.attendance.get_by_id(rec.attendance_id).version == 2


def test_count_and_range_queries():
    store = InMemoryStore()
    _upsert(store, attendance_date=date(2024, 3, 31))
    _upsert(store, attendance_date=date(2024, 4, 1), status=AttendanceStatus.ABSENT)
    _upsert(store, attendance_date=date(2024, 4, 2))
    _upsert(store, attendance_date=date(2024, 4, 2), course_id=2)

    assert store.attendance.count_for_student_course(student_id=1, course_id=1) == 3
    assert store.attendance.count_for_student_course(student_id=1, course_id=1, status=AttendanceStatus.PRESENT) == 2
    april = store.attendance.list_for_student_course_between(
        student_id=1, course_id=1, start_date=date(2024, 4, 1), end_date=date(2024, 4, 30)
    )
    assert [r.attendance_date for r in april] == [date(2024, 4, 1), date(2024, 4, 2)]
    newest_first = store.attendance.list_for_student(student_id=1)
    assert newest_first[0].attendance_date == date(2024, 4, 2)


def test_one_pending_request_per_record_and_student():
    store = InMemoryStore()
    first = store.corrections.create_pending(attendance_id=1, requested_by=100, reason="a", requested_at=AT)
    assert first is not None
    assert store.corrections.create_pending(attendance_id=1, requested_by=100, reason="b", requested_at=AT) is None
    # Another student's request on the same record is independent
    assert store.corrections.create_pending(attendance_id=1, requested_by=101, reason="c", requested_at=AT) is not None

    assert store.corrections.decide(
        request_id=first, status=RequestStatus.REJECTED, reviewed_by=10, review_comments=None, reviewed_at=AT
    )
    assert not store.corrections.decide(
        request_id=first, status=RequestStatus.APPROVED, reviewed_by=10, review_comments=None, reviewed_at=AT
    )
    assert store.corrections.create_pending(attendance_id=1, requested_by=100, reason="d", requested_at=AT) is not None


def test_report_upsert_keeps_id_and_overwrites_values():
    store = InMemoryStore()
    tally = MonthlyTally(
        student_id=1,
        course_id=1,
        month=4,
        year=2024,
        total_classes=2,
        present_count=1,
        absent_count=1,
        late_count=0,
        excused_count=0,
        attendance_percentage=Decimal("50.00"),
    )
    first = store.reports.upsert(tally=tally, generated_at=AT)
    second = store.reports.upsert(tally=tally, generated_at=datetime(2024, 5, 1))

    assert second.report_id == first.report_id
    assert second.generated_at == datetime(2024, 5, 1)
    assert len(store.reports_by_key) == 1
    assert store.reports.list_below_threshold(student_id=1, threshold=Decimal("75.00")) == [second]
    assert store.reports.list_below_threshold(student_id=1, threshold=Decimal("50.00")) == []


def test_inactive_enrollments_are_hidden():
    store = InMemoryStore()
    store.enroll(1, 1)
    store.enroll(2, 1, active=False)
    assert [(e.student_id, e.course_id) for e in store.enrollments.list_active()] == [(1, 1)]
