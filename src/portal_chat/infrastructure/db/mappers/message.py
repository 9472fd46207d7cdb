from __future__ import annotations

from portal_chat.domain.entities.message import Message
from portal_chat.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        sender_id=model.sender_id,
        receiver_id=model.receiver_id,
        content=model.content,
        is_from_admin=bool(model.is_from_admin),
        is_read=bool(model.is_read),
        created_at=model.created_at,
    )
