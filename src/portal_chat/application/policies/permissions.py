from __future__ import annotations

from portal_chat.application.dto.principal import Principal
from portal_chat.application.exceptions import ForbiddenError


def assert_sender(principal: Principal, sender_id: int) -> None:
    """Raise unless the principal is sending as itself."""
    if principal.user_id != sender_id:
        raise ForbiddenError(
            f"User {principal.user_id} cannot send as user {sender_id}"
        )


def assert_admin(principal: Principal) -> None:
    if not principal.is_admin:
        raise ForbiddenError("Admin access required")
