from __future__ import annotations

from typing import Protocol

from portal_chat.domain.entities.user import User


class UserReader(Protocol):
    """User directory collaborator."""

    async def get_by_id(self, user_id: int) -> User | None: ...
