from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Course:
    """Read-only course metadata (display only)."""

    course_id: int
    course_code: str
    course_name: str
