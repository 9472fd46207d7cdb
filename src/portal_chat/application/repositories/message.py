from __future__ import annotations

from datetime import datetime
from typing import Protocol

from portal_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def list_between(self, user_id: int, other_user_id: int) -> list[Message]:
        """Messages of the unordered pair, ascending by (created_at, id)."""
        ...

    async def list_for_user(self, user_id: int, *, newest_first: bool = False) -> list[Message]:
        """Messages where ``user_id`` is sender or receiver."""
        ...

    async def count_unread(self, receiver_id: int, *, sender_id: int | None = None) -> int: ...

    async def count_all_unread(self) -> int: ...


class MessageWriter(Protocol):
    async def create(
        self,
        sender_id: int,
        receiver_id: int | None,
        content: str,
        is_from_admin: bool,
        created_at: datetime,
    ) -> Message:
        """Insert a message and return it with its store-assigned id."""
        ...

    async def mark_read(self, sender_id: int, receiver_id: int) -> int:
        """Flip unread messages of the directed pair. Returns the number flipped."""
        ...
