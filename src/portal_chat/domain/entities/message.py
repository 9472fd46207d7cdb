from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Message:
    id: int
    sender_id: int
    receiver_id: int | None
    content: str
    is_from_admin: bool
    is_read: bool
    created_at: datetime

    def other_party(self, user_id: int) -> int | None:
        """Return the participant that is not ``user_id`` (None if unaddressed)."""
        if self.sender_id == user_id:
            return self.receiver_id
        return self.sender_id
