from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from campus_attendance.attendance.percentage import PercentageCalculator, percentage
from campus_attendance.core.enums import AttendanceStatus
from campus_attendance.core.exceptions import ValidationError
from campus_attendance.store.memory import InMemoryStore


def _seed(store: InMemoryStore, *statuses: AttendanceStatus, student_id=1, course_id=1):
    start = date(2024, 4, 1)
    for i, status in enumerate(statuses):
        store.attendance.upsert(
            student_id=student_id,
            course_id=course_id,
            attendance_date=start + timedelta(days=i),
            status=status,
            marked_by=10,
            marked_at=datetime(2024, 4, 1, 9, 0),
        )


@pytest.mark.parametrize(
    "num,den,expected",
    [
        (7, 9, Decimal("77.78")),
        (1, 2, Decimal("50.00")),
        (2, 3, Decimal("66.67")),
        (1, 8, Decimal("12.50")),
        (0, 5, Decimal("0.00")),
        (5, 5, Decimal("100.00")),
        (0, 0, Decimal("0.00")),
    ],
)
def test_percentage_rounds_half_up_to_two_places(num, den, expected):
    assert percentage(num, den) == expected
    assert str(percentage(num, den)) == str(expected)


def test_half_up_not_bankers_rounding():
    # 100/32 = 3.125 exactly
    assert percentage(1, 32) == Decimal("3.13")


def test_zero_records_is_zero_percent():
    calc = PercentageCalculator(InMemoryStore().attendance)
    assert calc.calculate_percentage(1, 1) == Decimal("0.00")


def test_only_present_counts():
    store = InMemoryStore()
    P, A, L, E = AttendanceStatus.PRESENT, AttendanceStatus.ABSENT, AttendanceStatus.LATE, AttendanceStatus.EXCUSED
    _seed(store, P, P, P, P, P, P, P, A, L)
    calc = PercentageCalculator(store.attendance)
    assert calc.calculate_percentage(1, 1) == Decimal("77.78")

    _seed(store, E, student_id=2)
    assert calc.calculate_percentage(2, 1) == Decimal("0.00")


def test_other_students_and_courses_do_not_leak():
    store = InMemoryStore()
    _seed(store, AttendanceStatus.PRESENT, student_id=1, course_id=1)
    _seed(store, AttendanceStatus.ABSENT, AttendanceStatus.ABSENT, student_id=1, course_id=2)
    _seed(store, AttendanceStatus.ABSENT, student_id=2, course_id=1)
    calc = PercentageCalculator(store.attendance)
    assert calc.calculate_percentage(1, 1) == Decimal("100.00")
    assert calc.calculate_percentage(1, 2) == Decimal("0.00")


def test_low_attendance_is_strictly_below_threshold():
    store = InMemoryStore()
    P, A = AttendanceStatus.PRESENT, AttendanceStatus.ABSENT
    _seed(store, P, P, P, A)  # 75.00
    calc = PercentageCalculator(store.attendance)
    assert calc.calculate_percentage(1, 1) == Decimal("75.00")
    assert calc.has_low_attendance(1, 1) is False

    _seed(store, P, A, A, student_id=2)  # 33.33
    assert calc.has_low_attendance(2, 1) is True


def test_low_attendance_custom_threshold():
    store = InMemoryStore()
    _seed(store, AttendanceStatus.PRESENT, AttendanceStatus.ABSENT)
    calc = PercentageCalculator(store.attendance, threshold=Decimal("40"))
    assert calc.has_low_attendance(1, 1) is False
    assert calc.has_low_attendance(1, 1, threshold=50.01) is True
    assert calc.has_low_attendance(1, 1, threshold="50.00") is False


def test_invalid_threshold_rejected():
    with pytest.raises(ValidationError):
        PercentageCalculator(InMemoryStore().attendance, threshold="abc")
    with pytest.raises(ValidationError):
        PercentageCalculator(InMemoryStore().attendance, threshold=101)
