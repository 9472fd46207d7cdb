from __future__ import annotations

from portal_chat.api.v1.schemas.common import CamelModel
from portal_chat.domain.value_objects.enums import UserRole


class UserResponse(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: UserRole
    student_id: str | None = None
