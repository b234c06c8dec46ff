from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable

from ..alerts.sink import AlertSink, LoggingAlertSink, dispatch_alert
from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import coerce_date, now_local
from ..common.permissions import ensure_can_view_student, require_role
from ..common.validators import require_id, require_non_empty
from ..core.constants import DEFAULT_LIST_LIMIT, DEFAULT_REVIEW_MAX_RETRIES
from ..core.enums import AttendanceStatus, RequestStatus, Role
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .model import ApprovalOutcome, CorrectionRequest
from .repository import CorrectionRequestRepository

logger = logging.getLogger(__name__)

# Status written to the disputed record when a request is approved.
APPROVED_ATTENDANCE_STATUS = AttendanceStatus.PRESENT


def parse_decision(value) -> RequestStatus:
    try:
        decision = value if isinstance(value, RequestStatus) else RequestStatus(str(value or "").strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown decision: {value!r}")
    if not decision.is_terminal:
        raise ValidationError("Decision must be APPROVED or REJECTED")
    return decision


class CorrectionService:
    """Correction request workflow: PENDING -> APPROVED | REJECTED (terminal)."""

    def __init__(
        self,
        requests: CorrectionRequestRepository,
        attendance: AttendanceRepository,
        *,
        alerts: AlertSink | None = None,
        clock: Callable[[], datetime] = now_local,
        max_retries: int = DEFAULT_REVIEW_MAX_RETRIES,
    ):
        self._requests = requests
        self._attendance = attendance
        self._alerts = alerts if alerts is not None else LoggingAlertSink()
        self._clock = clock
        self._max_retries = max(int(max_retries), 1)

    def submit(
        self,
        *,
        current_role: Role,
        student_id: int,
        attendance_id: int,
        reason: str,
    ) -> CorrectionRequest:
        """Open a request, or return the one already pending for this record and student."""

        require_role(current_role, Role.STUDENT, message="Only students can request corrections")
        student_id = require_id(student_id, "Student id")
        attendance_id = require_id(attendance_id, "Attendance id")
        reason = require_non_empty(reason, "Reason")

        record = self._attendance.get_by_id(attendance_id)
        if not record:
            raise NotFoundError(f"Attendance record {attendance_id} not found")
        if record.student_id != student_id:
            raise AuthorizationError("You can only dispute your own attendance")

        existing = self._requests.find_pending(attendance_id=attendance_id, requested_by=student_id)
        if existing:
            return existing

        request_id = self._requests.create_pending(
            attendance_id=attendance_id,
            requested_by=student_id,
            reason=reason,
            requested_at=self._clock(),
        )
        if request_id is None:
            # Lost the race against a concurrent submit for the same pair.
            existing = self._requests.find_pending(attendance_id=attendance_id, requested_by=student_id)
            if not existing:
                raise ConflictError("Could not create correction request, please retry")
            return existing

        created = self._requests.get_by_id(request_id=request_id)
        if not created:
            raise NotFoundError(f"Correction request {request_id} not found")
        logger.info(
            "Correction request %s opened by student=%s for attendance=%s",
            request_id,
            student_id,
            attendance_id,
        )
        return created

    def submit_for_date(
        self,
        *,
        current_role: Role,
        student_id: int,
        course_id: int,
        attendance_date: date | str,
        reason: str,
    ) -> CorrectionRequest:
        require_role(current_role, Role.STUDENT, message="Only students can request corrections")
        record = self._attendance.get_by_key(
            student_id=require_id(student_id, "Student id"),
            course_id=require_id(course_id, "Course id"),
            attendance_date=coerce_date(attendance_date),
        )
        if not record:
            raise NotFoundError("No attendance record found for this date")
        return self.submit(
            current_role=current_role,
            student_id=student_id,
            attendance_id=record.attendance_id,
            reason=reason,
        )

    def review(
        self,
        *,
        current_role: Role,
        reviewer_id: int,
        request_id: int,
        decision: RequestStatus | str,
        comments: str = "",
    ) -> CorrectionRequest:
        require_role(current_role, Role.FACULTY, Role.ADMIN, message="Only faculty can review corrections")
        reviewer_id = require_id(reviewer_id, "Reviewer id")
        request_id = require_id(request_id, "Request id")
        decision = parse_decision(decision)

        req = self._requests.get_by_id(request_id=request_id)
        if not req:
            raise NotFoundError(f"Correction request {request_id} not found")
        if req.status != RequestStatus.PENDING:
            raise ConflictError(f"Correction request {request_id} was already {req.status.value}")

        record = self._attendance.get_by_id(req.attendance_id)
        if not record:
            raise NotFoundError(f"Attendance record {req.attendance_id} not found")
        if current_role == Role.FACULTY and record.marked_by != reviewer_id:
            raise AuthorizationError("You can only review corrections on attendance you marked")

        review_comments = (comments or "").strip() or None
        reviewed_at = self._clock()

        if decision == RequestStatus.APPROVED:
            updated = self._approve(req, record, reviewer_id, review_comments, reviewed_at)
            dispatch_alert(self._alerts.notify_attendance_changed, updated)
        else:
            decided = self._requests.decide(
                request_id=request_id,
                status=decision,
                reviewed_by=reviewer_id,
                review_comments=review_comments,
                reviewed_at=reviewed_at,
            )
            if not decided:
                raise ConflictError(f"Correction request {request_id} was already reviewed")

        logger.info("Correction request %s %s by reviewer=%s", request_id, decision.value, reviewer_id)

        reviewed = self._requests.get_by_id(request_id=request_id)
        if not reviewed:
            raise NotFoundError(f"Correction request {request_id} not found")
        return reviewed

    def _approve(
        self,
        req: CorrectionRequest,
        record: AttendanceRecord,
        reviewer_id: int,
        review_comments: str | None,
        reviewed_at: datetime,
    ) -> AttendanceRecord:
        """Approve the request and overwrite the record together, re-reading on a stale version.

        When the retries run out nothing has been written and the request stays PENDING.
        """

        current = record
        for _ in range(self._max_retries):
            outcome = self._requests.approve(
                request_id=req.request_id,
                reviewed_by=reviewer_id,
                review_comments=review_comments,
                reviewed_at=reviewed_at,
                attendance_id=current.attendance_id,
                expected_version=current.version,
                status=APPROVED_ATTENDANCE_STATUS,
            )
            if outcome == ApprovalOutcome.NOT_PENDING:
                raise ConflictError(f"Correction request {req.request_id} was already reviewed")

            refreshed = self._attendance.get_by_id(current.attendance_id)
            if not refreshed:
                raise NotFoundError(f"Attendance record {current.attendance_id} not found")
            if outcome == ApprovalOutcome.APPLIED:
                return refreshed
            logger.info(
                "Attendance %s changed concurrently (version %s -> %s), retrying",
                current.attendance_id,
                current.version,
                refreshed.version,
            )
            current = refreshed

        raise ConflictError(
            f"Attendance record {record.attendance_id} kept changing; request {req.request_id} is still pending"
        )

    def pending_requests_for_faculty(self, *, current_role: Role, faculty_id: int) -> list[CorrectionRequest]:
        require_role(current_role, Role.FACULTY, Role.ADMIN, message="Only faculty can list pending corrections")
        return list(
            self._requests.list_pending_for_marker(
                faculty_id=require_id(faculty_id, "Faculty id"),
                limit=DEFAULT_LIST_LIMIT,
            )
        )

    def requests_for_student(
        self,
        *,
        current_role: Role,
        acting_user_id: int,
        student_id: int,
    ) -> list[CorrectionRequest]:
        ensure_can_view_student(current_role, acting_user_id, student_id)
        return list(
            self._requests.list_for_student(
                student_id=require_id(student_id, "Student id"),
                limit=DEFAULT_LIST_LIMIT,
            )
        )
