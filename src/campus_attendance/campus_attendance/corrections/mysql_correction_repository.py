from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import AttendanceStatus, RequestStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import ApprovalOutcome, CorrectionRequest
from .repository import CorrectionRequestRepository

_COLUMNS = (
    "r.request_id, r.attendance_id, r.requested_by, r.reason, r.status, r.requested_at, "
    "r.reviewed_by, r.review_comments, r.reviewed_at"
)


def _to_request(r: dict) -> CorrectionRequest:
    return CorrectionRequest(
        request_id=int(r["request_id"]),
        attendance_id=int(r["attendance_id"]),
        requested_by=int(r["requested_by"]),
        reason=r["reason"],
        status=RequestStatus(r["status"]),
        requested_at=r["requested_at"],
        reviewed_by=int(r["reviewed_by"]) if r.get("reviewed_by") is not None else None,
        review_comments=r.get("review_comments"),
        reviewed_at=r.get("reviewed_at"),
    )


class MySQLCorrectionRequestRepository(CorrectionRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, *, request_id: int) -> Optional[CorrectionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_correction_requests r WHERE r.request_id=%s",
                (int(request_id),),
            )
            r = fetchone(cur)
            return _to_request(r) if r else None

    def find_pending(self, *, attendance_id: int, requested_by: int) -> Optional[CorrectionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_correction_requests r
                WHERE r.attendance_id=%s AND r.requested_by=%s AND r.status=%s
                """,
                (int(attendance_id), int(requested_by), RequestStatus.PENDING.value),
            )
            r = fetchone(cur)
            return _to_request(r) if r else None

    def create_pending(
        self,
        *,
        attendance_id: int,
        requested_by: int,
        reason: str,
        requested_at: datetime,
    ) -> Optional[int]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_correction_requests(attendance_id, requested_by, reason, status, requested_at)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (int(attendance_id), int(requested_by), reason, RequestStatus.PENDING.value, requested_at),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            # uq_pending_request: another PENDING row for the same pair won the race.
            if is_duplicate_key(e):
                return None
            raise

    def decide(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        reviewed_by: int,
        review_comments: Optional[str],
        reviewed_at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_correction_requests
                SET status=%s, reviewed_by=%s, review_comments=%s, reviewed_at=%s
                WHERE request_id=%s AND status=%s
                """,
                (
                    status.value,
                    int(reviewed_by),
                    review_comments,
                    reviewed_at,
                    int(request_id),
                    RequestStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def approve(
        self,
        *,
        request_id: int,
        reviewed_by: int,
        review_comments: Optional[str],
        reviewed_at: datetime,
        attendance_id: int,
        expected_version: int,
        status: AttendanceStatus,
    ) -> ApprovalOutcome:
        with db_cursor(self._conn_factory) as (conn, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET status=%s, version=version + 1
                WHERE attendance_id=%s AND version=%s
                """,
                (status.value, int(attendance_id), int(expected_version)),
            )
            if cur.rowcount == 0:
                return ApprovalOutcome.STALE_RECORD

            cur.execute(
                """
                UPDATE attendance_correction_requests
                SET status=%s, reviewed_by=%s, review_comments=%s, reviewed_at=%s
                WHERE request_id=%s AND status=%s
                """,
                (
                    RequestStatus.APPROVED.value,
                    int(reviewed_by),
                    review_comments,
                    reviewed_at,
                    int(request_id),
                    RequestStatus.PENDING.value,
                ),
            )
            if cur.rowcount == 0:
                # Reviewed concurrently; undo the record write.
                conn.rollback()
                return ApprovalOutcome.NOT_PENDING
            return ApprovalOutcome.APPLIED

    def list_pending_for_marker(self, *, faculty_id: int, limit: int = 500) -> Sequence[CorrectionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_correction_requests r
                JOIN attendance_records a ON a.attendance_id = r.attendance_id
                WHERE a.marked_by=%s AND r.status=%s
                ORDER BY r.requested_at ASC
                LIMIT %s
                """,
                (int(faculty_id), RequestStatus.PENDING.value, int(limit)),
            )
            return [_to_request(r) for r in fetchall(cur)]

    def list_for_student(self, *, student_id: int, limit: int = 500) -> Sequence[CorrectionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_correction_requests r
                WHERE r.requested_by=%s
                ORDER BY r.requested_at DESC
                LIMIT %s
                """,
                (int(student_id), int(limit)),
            )
            return [_to_request(r) for r in fetchall(cur)]
