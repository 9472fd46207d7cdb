from __future__ import annotations

from dataclasses import dataclass

from portal_chat.domain.value_objects.enums import UserRole


@dataclass(frozen=True, slots=True)
class User:
    id: int
    email: str
    first_name: str
    last_name: str
    role: UserRole
    student_id: str | None = None
    is_active: bool = True
