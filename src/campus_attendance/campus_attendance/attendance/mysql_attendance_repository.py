from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = "attendance_id, student_id, course_id, attendance_date, status, marked_by, marked_at, version"


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        student_id=int(r["student_id"]),
        course_id=int(r["course_id"]),
        attendance_date=r["attendance_date"],
        status=AttendanceStatus(r["status"]),
        marked_by=int(r["marked_by"]),
        marked_at=r["marked_at"],
        version=int(r.get("version") or 1),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s",
                (int(attendance_id),),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_by_key(self, *, student_id: int, course_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE student_id=%s AND course_id=%s AND attendance_date=%s
                """,
                (int(student_id), int(course_id), attendance_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

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
        with db_cursor(self._conn_factory) as (_, cur):
            # uq_attendance_key serializes concurrent marks for the same key.
            cur.execute(
                """
                INSERT INTO attendance_records(student_id, course_id, attendance_date, status, marked_by, marked_at, version)
                VALUES(%s,%s,%s,%s,%s,%s,1) AS new
                ON DUPLICATE KEY UPDATE
                    status=new.status,
                    marked_by=new.marked_by,
                    marked_at=new.marked_at,
                    version=attendance_records.version + 1
                """,
                (int(student_id), int(course_id), attendance_date, status.value, int(marked_by), marked_at),
            )
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE student_id=%s AND course_id=%s AND attendance_date=%s
                """,
                (int(student_id), int(course_id), attendance_date),
            )
            return _to_record(fetchone(cur))

    def list_for_student(self, *, student_id: int, course_id: Optional[int] = None) -> Sequence[AttendanceRecord]:
        clauses = ["student_id=%s"]
        params: list[object] = [int(student_id)]
        if course_id is not None:
            clauses.append("course_id=%s")
            params.append(int(course_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {where}
                ORDER BY attendance_date DESC, course_id ASC
                """,
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_student_course_between(
        self,
        *,
        student_id: int,
        course_id: int,
        start_date: date,
        end_date: date,
    ) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE student_id=%s AND course_id=%s AND attendance_date BETWEEN %s AND %s
                ORDER BY attendance_date ASC
                """,
                (int(student_id), int(course_id), start_date, end_date),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def count_for_student_course(
        self,
        *,
        student_id: int,
        course_id: int,
        status: Optional[AttendanceStatus] = None,
    ) -> int:
        clauses = ["student_id=%s", "course_id=%s"]
        params: list[object] = [int(student_id), int(course_id)]
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM attendance_records WHERE {where}", tuple(params))
            r = fetchone(cur)
            return int(r["total"]) if r else 0
