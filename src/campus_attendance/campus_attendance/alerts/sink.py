"""Alert sink boundary.

The core only calls the sink. Delivery (email, dashboard, notification table)
belongs to whoever implements the protocol.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable, Protocol

from ..attendance.model import AttendanceRecord

logger = logging.getLogger(__name__)


class AlertSink(Protocol):
    def notify_attendance_changed(self, record: AttendanceRecord) -> None:
        raise NotImplementedError

    def notify_low_attendance(self, student_id: int, course_id: int, percentage: Decimal) -> None:
        raise NotImplementedError


class LoggingAlertSink(AlertSink):
    """Default sink: writes alerts to the application log."""

    def __init__(self, log: logging.Logger | None = None):
        self._log = log or logger

    def notify_attendance_changed(self, record: AttendanceRecord) -> None:
        self._log.info(
            "ATTENDANCE_CHANGED student=%s course=%s date=%s status=%s marked_by=%s at=%s",
            record.student_id,
            record.course_id,
            record.attendance_date.isoformat(),
            record.status.value,
            record.marked_by,
            record.marked_at.isoformat(timespec="seconds"),
        )

    def notify_low_attendance(self, student_id: int, course_id: int, percentage: Decimal) -> None:
        self._log.warning(
            "LOW_ATTENDANCE student=%s course=%s percentage=%s",
            student_id,
            course_id,
            percentage,
        )


def dispatch_alert(notify: Callable[..., None], *args) -> bool:
    """Best-effort call into the sink: failures are logged, never raised."""
    try:
        notify(*args)
        return True
    except Exception:
        logger.exception("Alert delivery failed (%s)", getattr(notify, "__name__", notify))
        return False
