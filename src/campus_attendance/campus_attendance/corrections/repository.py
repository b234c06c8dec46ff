from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus, RequestStatus
from .model import ApprovalOutcome, CorrectionRequest


class CorrectionRequestRepository(Protocol):
    def get_by_id(self, *, request_id: int) -> Optional[CorrectionRequest]:
        raise NotImplementedError

    def find_pending(self, *, attendance_id: int, requested_by: int) -> Optional[CorrectionRequest]:
        raise NotImplementedError

    def create_pending(
        self,
        *,
        attendance_id: int,
        requested_by: int,
        reason: str,
        requested_at: datetime,
    ) -> Optional[int]:
        """Insert a PENDING request.

        Returns None when another PENDING request for the same
        (attendance_id, requested_by) already exists.
        """

        raise NotImplementedError

    def decide(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        reviewed_by: int,
        review_comments: Optional[str],
        reviewed_at: datetime,
    ) -> bool:
        """PENDING -> terminal, only if still PENDING."""

        raise NotImplementedError

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
        """Mark the request APPROVED and overwrite the record's status as one unit.

        The record is written only if it is still at ``expected_version`` and
        the request only if it is still PENDING; otherwise nothing changes.
        """

        raise NotImplementedError

    def list_pending_for_marker(self, *, faculty_id: int, limit: int = 500) -> Sequence[CorrectionRequest]:
        raise NotImplementedError

    def list_for_student(self, *, student_id: int, limit: int = 500) -> Sequence[CorrectionRequest]:
        raise NotImplementedError
