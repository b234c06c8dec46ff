from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Role of the acting user, supplied by the caller for permission checks."""

    ADMIN = "admin"
    FACULTY = "faculty"
    STUDENT = "student"


class AttendanceStatus(str, Enum):
    """Per-day attendance mark stored for a student in a course."""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    EXCUSED = "EXCUSED"


class RequestStatus(str, Enum):
    """Correction request workflow state. APPROVED and REJECTED are terminal."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING
