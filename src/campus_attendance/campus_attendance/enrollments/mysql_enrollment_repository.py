from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import Enrollment
from .repository import EnrollmentRepository


class MySQLEnrollmentRepository(EnrollmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_active(self) -> Sequence[Enrollment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT student_id, course_id, is_active
                FROM enrollments
                WHERE is_active=1
                ORDER BY course_id ASC, student_id ASC
                """
            )
            return [
                Enrollment(
                    student_id=int(r["student_id"]),
                    course_id=int(r["course_id"]),
                    active=bool(r["is_active"]),
                )
                for r in fetchall(cur)
            ]
