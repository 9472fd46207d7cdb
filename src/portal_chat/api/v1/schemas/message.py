from __future__ import annotations

from datetime import datetime

from portal_chat.api.v1.schemas.common import CamelModel
from portal_chat.api.v1.schemas.user import UserResponse


class SendMessageRequest(CamelModel):
    receiver_id: int | None = None
    content: str


class MarkReadRequest(CamelModel):
    sender_id: int


class MarkReadResponse(CamelModel):
    message: str
    updated: int


class MessageResponse(CamelModel):
    id: int
    sender_id: int
    receiver_id: int | None
    content: str
    is_from_admin: bool
    is_read: bool
    created_at: datetime


class MessageWithSenderResponse(MessageResponse):
    sender: UserResponse | None = None
