from __future__ import annotations

from dataclasses import dataclass

from portal_chat.domain.entities.message import Message
from portal_chat.domain.entities.user import User


@dataclass(frozen=True, slots=True)
class Conversation:
    """Derived view of one counterpart in an owner's inbox. Never stored."""

    other_user: User
    last_message: Message
    unread_count: int
