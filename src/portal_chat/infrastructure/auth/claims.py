from __future__ import annotations

from typing import Any

from portal_chat.application.dto.principal import Principal
from portal_chat.domain.value_objects.enums import UserRole


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Map verified session claims onto a Principal.

    ``sub`` carries the user id; ``role`` falls back to ``roles`` and then
    to student.
    """
    role_raw = payload.get("role")
    if role_raw is None and UserRole.ADMIN in payload.get("roles", []):
        role_raw = UserRole.ADMIN
    role = UserRole(role_raw) if role_raw in UserRole.__members__.values() else UserRole.STUDENT
    return Principal(user_id=int(payload["sub"]), role=role)
