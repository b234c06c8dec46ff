from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Enrollment:
    student_id: int
    course_id: int
    active: bool = True
