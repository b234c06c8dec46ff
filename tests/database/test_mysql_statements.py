from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from campus_attendance.attendance.mysql_attendance_repository import MySQLAttendanceRepository
from campus_attendance.core.enums import AttendanceStatus
from campus_attendance.corrections.model import ApprovalOutcome
from campus_attendance.corrections.mysql_correction_repository import MySQLCorrectionRequestRepository
from campus_attendance.database import bootstrap
from campus_attendance.database.connection import DatabaseConnection
from campus_attendance.reports.model import MonthlyTally
from campus_attendance.reports.mysql_report_repository import MySQLMonthlyReportRepository

SEED = Path(__file__).resolve().parents[2] / "database" / "seed.sql"
AT = datetime(2024, 4, 1, 9, 0)

# `col=VALUES(col)` inside ON DUPLICATE KEY UPDATE, deprecated since MySQL 8.0.20.
LEGACY_VALUES_REF = re.compile(r"=\s*VALUES\s*\(", re.IGNORECASE)


class FakeCursor:
    def __init__(self, conn):
        self._conn = conn
        self.rowcount = -1
        self.lastrowid = None

    def execute(self, sql, params=()):
        self._conn.executed.append((" ".join(sql.split()), params))
        if self._conn.rowcounts:
            self.rowcount = self._conn.rowcounts.pop(0)

    def fetchone(self):
        return self._conn.row

    def close(self):
        pass


class FakeConnection:
    def __init__(self, *, row=None, rowcounts=()):
        self.row = row
        self.rowcounts = list(rowcounts)
        self.executed = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def cursor(self, dictionary=True):
        return FakeCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True


class FakeConnFactory:
    def __init__(self, conn: FakeConnection):
        self.conn = conn

    def connect(self, *, with_database: bool = True):
        return self.conn


def _record_row(**overrides):
    row = dict(
        attendance_id=7,
        student_id=100,
        course_id=1,
        attendance_date=date(2024, 4, 1),
        status="PRESENT",
        marked_by=10,
        marked_at=AT,
        version=2,
    )
    row.update(overrides)
    return row


def test_attendance_upsert_uses_row_alias():
    conn = FakeConnection(row=_record_row())
    repo = MySQLAttendanceRepository(FakeConnFactory(conn))

    record = repo.upsert(
        student_id=100,
        course_id=1,
        attendance_date=date(2024, 4, 1),
        status=AttendanceStatus.PRESENT,
        marked_by=10,
        marked_at=AT,
    )

    insert_sql, params = conn.executed[0]
    assert "AS new ON DUPLICATE KEY UPDATE" in insert_sql
    assert "status=new.status" in insert_sql
    assert "version=attendance_records.version + 1" in insert_sql
    assert not LEGACY_VALUES_REF.search(insert_sql)
    assert params[3] == "PRESENT"
    assert (record.attendance_id, record.version) == (7, 2)
    assert conn.commits == 1 and conn.closed


def test_report_upsert_uses_row_alias():
    conn = FakeConnection(
        row=dict(
            report_id=3,
            student_id=100,
            course_id=1,
            month=4,
            year=2024,
            total_classes=4,
            present_count=2,
            absent_count=1,
            late_count=1,
            excused_count=0,
            attendance_percentage=Decimal("75.00"),
            generated_at=AT,
        )
    )
    repo = MySQLMonthlyReportRepository(FakeConnFactory(conn))
    tally = MonthlyTally(
        student_id=100,
        course_id=1,
        month=4,
        year=2024,
        total_classes=4,
        present_count=2,
        absent_count=1,
        late_count=1,
        excused_count=0,
        attendance_percentage=Decimal("75.00"),
    )

    report = repo.upsert(tally=tally, generated_at=AT)

    insert_sql, _ = conn.executed[0]
    assert "AS new ON DUPLICATE KEY UPDATE" in insert_sql
    assert "attendance_percentage=new.attendance_percentage" in insert_sql
    assert not LEGACY_VALUES_REF.search(insert_sql)
    assert report.attendance_percentage == Decimal("75.00")


def test_demo_data_and_seed_use_row_alias(monkeypatch):
    conn = FakeConnection(row={"user_id": 1, "course_id": 1})
    monkeypatch.setattr(DatabaseConnection, "connect", lambda self, **kwargs: conn)
    monkeypatch.setattr(bootstrap, "generate_password_hash", lambda password: f"hashed:{password}")

    bootstrap.ensure_demo_data({"database": "campus_attendance"})

    upserts = [sql for sql, _ in conn.executed if "ON DUPLICATE KEY UPDATE" in sql]
    assert upserts
    assert not any(LEGACY_VALUES_REF.search(sql) for sql in upserts)
    assert any("full_name=new.full_name" in sql for sql in upserts)

    assert not LEGACY_VALUES_REF.search(SEED.read_text(encoding="utf-8"))


def _approve(repo, expected_version=1):
    return repo.approve(
        request_id=5,
        reviewed_by=10,
        review_comments=None,
        reviewed_at=AT,
        attendance_id=7,
        expected_version=expected_version,
        status=AttendanceStatus.PRESENT,
    )


def test_approve_runs_both_updates_in_one_transaction():
    conn = FakeConnection(rowcounts=[1, 1])
    outcome = _approve(MySQLCorrectionRequestRepository(FakeConnFactory(conn)))

    assert outcome == ApprovalOutcome.APPLIED
    assert [sql.split()[1] for sql, _ in conn.executed] == ["attendance_records", "attendance_correction_requests"]
    assert conn.executed[0][1] == ("PRESENT", 7, 1)
    assert (conn.commits, conn.rollbacks) == (1, 0)


def test_approve_stale_record_skips_request_update():
    conn = FakeConnection(rowcounts=[0])
    outcome = _approve(MySQLCorrectionRequestRepository(FakeConnFactory(conn)))

    assert outcome == ApprovalOutcome.STALE_RECORD
    assert len(conn.executed) == 1


def test_approve_rolls_back_record_when_request_already_decided():
    conn = FakeConnection(rowcounts=[1, 0])
    outcome = _approve(MySQLCorrectionRequestRepository(FakeConnFactory(conn)))

    assert outcome == ApprovalOutcome.NOT_PENDING
    assert len(conn.executed) == 2
    assert conn.rollbacks == 1
