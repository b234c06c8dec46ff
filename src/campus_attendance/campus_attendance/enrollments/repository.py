from __future__ import annotations

from typing import Protocol, Sequence

from .model import Enrollment


class EnrollmentRepository(Protocol):
    def list_active(self) -> Sequence[Enrollment]:
        """Active (student, course) pairs; scopes monthly report generation."""

        raise NotImplementedError
