from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Directory entry as seen by the attendance core.

    Plain data object; accounts and credentials live in the identity service.
    """

    user_id: int
    full_name: str
    username: str
    role: Role
    is_active: bool = True
