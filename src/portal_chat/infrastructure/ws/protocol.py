"""WebSocket envelope models.

Inbound text is decoded once into one of ``AuthEnvelope``, ``SendEnvelope``,
``TypingEnvelope`` or ``UnknownEnvelope``. Field names on the wire are
camelCase.
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from portal_chat.application.exceptions import ValidationError
from portal_chat.domain.entities.message import Message
from portal_chat.domain.value_objects.enums import EnvelopeType


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuthEnvelope(_CamelModel):
    type: Literal["auth"]
    user_id: int
    user_role: str | None = None


class SendEnvelope(_CamelModel):
    type: Literal["message"]
    sender_id: int
    receiver_id: int | None = None
    content: str
    is_from_admin: bool = False


class TypingEnvelope(_CamelModel):
    type: Literal["typing"]
    sender_id: int | None = None
    receiver_id: int
    is_typing: bool


class UnknownEnvelope(BaseModel):
    type: str


KnownEnvelope = Annotated[
    Union[AuthEnvelope, SendEnvelope, TypingEnvelope],
    Field(discriminator="type"),
]
InboundEnvelope = Union[AuthEnvelope, SendEnvelope, TypingEnvelope, UnknownEnvelope]

_known_adapter: TypeAdapter[Any] = TypeAdapter(KnownEnvelope)
_KNOWN_TYPES = frozenset(t.value for t in EnvelopeType)


def decode_envelope(raw: str | bytes) -> InboundEnvelope:
    """Parse one inbound frame.

    Raises ValidationError when the frame is not a JSON object with a string
    ``type``, or when a known type is missing required fields.
    """
    try:
        obj = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError(f"invalid JSON: {exc}") from exc

    if not isinstance(obj, dict) or not isinstance(obj.get("type"), str):
        raise ValidationError("envelope must be an object with a string 'type'")

    if obj["type"] not in _KNOWN_TYPES:
        return UnknownEnvelope(type=obj["type"])

    try:
        return _known_adapter.validate_python(obj)
    except PydanticValidationError as exc:
        raise ValidationError(f"invalid {obj['type']} envelope: {exc.error_count()} error(s)") from exc


class MessageRecord(_CamelModel):
    """Canonical message as delivered to clients."""

    id: int
    sender_id: int
    receiver_id: int | None
    content: str
    is_from_admin: bool
    is_read: bool
    created_at: datetime

    @classmethod
    def from_entity(cls, msg: Message) -> MessageRecord:
        return cls(
            id=msg.id,
            sender_id=msg.sender_id,
            receiver_id=msg.receiver_id,
            content=msg.content,
            is_from_admin=msg.is_from_admin,
            is_read=msg.is_read,
            created_at=msg.created_at,
        )


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # message | typing
    data: dict[str, Any] = {}

    @classmethod
    def message(cls, msg: Message) -> WsOutbound:
        record = MessageRecord.from_entity(msg)
        return cls(type=EnvelopeType.MESSAGE.value, data=record.model_dump(mode="json", by_alias=True))

    @classmethod
    def typing(cls, sender_id: int, is_typing: bool) -> WsOutbound:
        return cls(type=EnvelopeType.TYPING.value, data={"senderId": sender_id, "isTyping": is_typing})
