from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SendMessageDTO:
    sender_id: int
    receiver_id: int | None
    content: str
    is_from_admin: bool = False
