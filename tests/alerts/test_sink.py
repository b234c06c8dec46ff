from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from campus_attendance.alerts.sink import LoggingAlertSink, dispatch_alert
from campus_attendance.attendance.model import AttendanceRecord
from campus_attendance.core.enums import AttendanceStatus


def _record():
    return AttendanceRecord(
        attendance_id=1,
        student_id=100,
        course_id=1,
        attendance_date=date(2024, 4, 2),
        status=AttendanceStatus.ABSENT,
        marked_by=10,
        marked_at=datetime(2024, 4, 2, 9, 15, 0),
    )


def test_logging_sink_writes_structured_lines(caplog):
    sink = LoggingAlertSink()
    with caplog.at_level(logging.INFO, logger="campus_attendance"):
        sink.notify_attendance_changed(_record())
        sink.notify_low_attendance(100, 1, Decimal("50.00"))

    messages = [r.getMessage() for r in caplog.records]
    assert "ATTENDANCE_CHANGED student=100 course=1 date=2024-04-02 status=ABSENT marked_by=10 at=2024-04-02T09:15:00" in messages
    low = [r for r in caplog.records if r.getMessage().startswith("LOW_ATTENDANCE")]
    assert low and low[0].levelno == logging.WARNING
    assert "percentage=50.00" in low[0].getMessage()


def test_dispatch_alert_swallows_and_logs_failures(caplog):
    def broken(*args):
        raise RuntimeError("smtp unreachable")

    with caplog.at_level(logging.ERROR, logger="campus_attendance"):
        assert dispatch_alert(broken, 1, 2) is False

    assert any("Alert delivery failed" in r.getMessage() and r.exc_info for r in caplog.records)


def test_dispatch_alert_passes_arguments():
    seen = []
    assert dispatch_alert(lambda *args: seen.append(args), 100, 1, Decimal("10.00")) is True
    assert seen == [(100, 1, Decimal("10.00"))]
