from __future__ import annotations

from portal_chat.api.v1.schemas.common import CamelModel
from portal_chat.api.v1.schemas.message import MessageResponse
from portal_chat.api.v1.schemas.user import UserResponse


class ConversationResponse(CamelModel):
    user: UserResponse
    last_message: MessageResponse
    unread_count: int
