from __future__ import annotations

from ..core.enums import Role
from ..core.exceptions import AuthorizationError


def require_role(current_role: Role, *allowed: Role, message: str = "You do not have permission") -> None:
    if current_role not in allowed:
        raise AuthorizationError(message)


def ensure_can_view_student(current_role: Role, acting_user_id: int, student_id: int) -> None:
    """Students may only read their own data; faculty and admins may read any."""
    if current_role in {Role.ADMIN, Role.FACULTY}:
        return
    if current_role == Role.STUDENT and int(acting_user_id) == int(student_id):
        return
    raise AuthorizationError("You can only view your own attendance")
