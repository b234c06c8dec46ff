from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_decimal
from .model import MonthlyReport, MonthlyTally
from .repository import MonthlyReportRepository

_COLUMNS = (
    "report_id, student_id, course_id, month, year, total_classes, present_count, "
    "absent_count, late_count, excused_count, attendance_percentage, generated_at"
)


def _to_report(r: dict) -> MonthlyReport:
    return MonthlyReport(
        report_id=int(r["report_id"]),
        student_id=int(r["student_id"]),
        course_id=int(r["course_id"]),
        month=int(r["month"]),
        year=int(r["year"]),
        total_classes=int(r["total_classes"]),
        present_count=int(r["present_count"]),
        absent_count=int(r["absent_count"]),
        late_count=int(r["late_count"]),
        excused_count=int(r["excused_count"]),
        attendance_percentage=to_decimal(r["attendance_percentage"]),
        generated_at=r["generated_at"],
    )


class MySQLMonthlyReportRepository(MonthlyReportRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def upsert(self, *, tally: MonthlyTally, generated_at: datetime) -> MonthlyReport:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_reports(
                    student_id, course_id, month, year,
                    total_classes, present_count, absent_count, late_count, excused_count,
                    attendance_percentage, generated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s) AS new
                ON DUPLICATE KEY UPDATE
                    total_classes=new.total_classes,
                    present_count=new.present_count,
                    absent_count=new.absent_count,
                    late_count=new.late_count,
                    excused_count=new.excused_count,
                    attendance_percentage=new.attendance_percentage,
                    generated_at=new.generated_at
                """,
                (
                    int(tally.student_id),
                    int(tally.course_id),
                    int(tally.month),
                    int(tally.year),
                    int(tally.total_classes),
                    int(tally.present_count),
                    int(tally.absent_count),
                    int(tally.late_count),
                    int(tally.excused_count),
                    tally.attendance_percentage,
                    generated_at,
                ),
            )
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_reports
                WHERE student_id=%s AND course_id=%s AND month=%s AND year=%s
                """,
                (int(tally.student_id), int(tally.course_id), int(tally.month), int(tally.year)),
            )
            return _to_report(fetchone(cur))

    def get_by_key(self, *, student_id: int, course_id: int, month: int, year: int) -> Optional[MonthlyReport]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_reports
                WHERE student_id=%s AND course_id=%s AND month=%s AND year=%s
                """,
                (int(student_id), int(course_id), int(month), int(year)),
            )
            r = fetchone(cur)
            return _to_report(r) if r else None

    def list_for_course_month(self, *, course_id: int, month: int, year: int) -> Sequence[MonthlyReport]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_reports
                WHERE course_id=%s AND month=%s AND year=%s
                ORDER BY student_id ASC
                """,
                (int(course_id), int(month), int(year)),
            )
            return [_to_report(r) for r in fetchall(cur)]

    def list_for_month(self, *, month: int, year: int) -> Sequence[MonthlyReport]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_reports
                WHERE month=%s AND year=%s
                ORDER BY course_id ASC, student_id ASC
                """,
                (int(month), int(year)),
            )
            return [_to_report(r) for r in fetchall(cur)]

    def list_below_threshold(self, *, student_id: int, threshold: Decimal) -> Sequence[MonthlyReport]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_reports
                WHERE student_id=%s AND attendance_percentage < %s
                ORDER BY year DESC, month DESC, course_id ASC
                """,
                (int(student_id), threshold),
            )
            return [_to_report(r) for r in fetchall(cur)]
