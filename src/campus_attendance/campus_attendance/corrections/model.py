from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from ..core.enums import RequestStatus


@dataclass(frozen=True)
class CorrectionRequest:
    """A student's dispute over one attendance record, resolved by faculty."""

    request_id: int
    attendance_id: int
    requested_by: int
    reason: str
    status: RequestStatus
    requested_at: datetime
    reviewed_by: Optional[int] = None
    review_comments: Optional[str] = None
    reviewed_at: Optional[datetime] = None


class ApprovalOutcome(str, Enum):
    """Result of applying an approval to a request and its record together."""

    APPLIED = "APPLIED"
    STALE_RECORD = "STALE_RECORD"
    NOT_PENDING = "NOT_PENDING"
