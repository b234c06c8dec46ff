from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from campus_attendance.container import build_memory_container
from campus_attendance.core.enums import Role
from campus_attendance.courses.model import Course
from campus_attendance.store.memory import InMemoryStore
from campus_attendance.users.model import User

ADMIN = 1
FACULTY = 10
OTHER_FACULTY = 11
S1 = 100
S2 = 101
S3 = 102
C1 = 1
C2 = 2


class FixedClock:
    """Deterministic clock; every call advances one second."""

    def __init__(self, start: datetime = datetime(2024, 4, 1, 9, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


class RecordingSink:
    def __init__(self):
        self.changed = []
        self.low = []

    def notify_attendance_changed(self, record):
        self.changed.append(record)

    def notify_low_attendance(self, student_id, course_id, percentage):
        self.low.append((student_id, course_id, percentage))


class ExplodingSink:
    def notify_attendance_changed(self, record):
        raise RuntimeError("mail server down")

    def notify_low_attendance(self, student_id, course_id, percentage):
        raise RuntimeError("mail server down")


def seeded_store() -> InMemoryStore:
    store = InMemoryStore(
        users=[
            User(user_id=ADMIN, full_name="Admin", username="admin", role=Role.ADMIN),
            User(user_id=FACULTY, full_name="Faculty One", username="f1", role=Role.FACULTY),
            User(user_id=OTHER_FACULTY, full_name="Faculty Two", username="f2", role=Role.FACULTY),
            User(user_id=S1, full_name="Student One", username="s1", role=Role.STUDENT),
            User(user_id=S2, full_name="Student Two", username="s2", role=Role.STUDENT),
            User(user_id=S3, full_name="Student Three", username="s3", role=Role.STUDENT),
        ],
        courses=[
            Course(course_id=C1, course_code="CS101", course_name="Intro to Programming"),
            Course(course_id=C2, course_code="MA201", course_name="Linear Algebra"),
        ],
    )
    store.enroll(S1, C1)
    store.enroll(S2, C1)
    store.enroll(S3, C2, active=False)
    return store


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def store():
    return seeded_store()


@pytest.fixture
def container(store, sink, clock):
    return build_memory_container(store, alert_sink=sink, clock=clock)
