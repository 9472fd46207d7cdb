from __future__ import annotations

import logging

from portal_chat.application.dto.message import SendMessageDTO
from portal_chat.application.dto.principal import Principal
from portal_chat.application.exceptions import NotFoundError, ValidationError
from portal_chat.application.policies.permissions import assert_sender
from portal_chat.application.ports.clock import Clock, system_clock
from portal_chat.application.uow import UnitOfWork
from portal_chat.domain.entities.message import Message
from portal_chat.domain.entities.user import User

logger = logging.getLogger(__name__)


async def create_message(
    data: SendMessageDTO,
    uow: UnitOfWork,
    clock: Clock = system_clock,
) -> Message:
    """Append a message to the store and return the canonical record.

    The store assigns ``id`` and ``created_at``; ``is_read`` always starts
    False. Empty or whitespace-only content is rejected.
    """
    if not data.content or not data.content.strip():
        raise ValidationError("Message content must not be empty")

    if data.receiver_id is not None:
        receiver = await uow.users.get_by_id(data.receiver_id)
        if receiver is None:
            raise NotFoundError(f"Receiver {data.receiver_id} not found")

    # Timestamp is taken before the insert is awaited, so two concurrent sends
    # may get ids and timestamps in opposite orders. Reads sort by (created_at, id).
    msg = await uow.messages_w.create(
        data.sender_id,
        data.receiver_id,
        data.content,
        data.is_from_admin,
        clock.now(),
    )
    await uow.commit()
    logger.debug("Message %d stored (%s -> %s)", msg.id, msg.sender_id, msg.receiver_id)
    return msg


async def send_message(
    principal: Principal,
    receiver_id: int | None,
    content: str,
    uow: UnitOfWork,
    clock: Clock = system_clock,
) -> Message:
    """Create a message authored by ``principal``.

    ``is_from_admin`` always follows the principal's role.
    """
    return await create_message(
        SendMessageDTO(
            sender_id=principal.user_id,
            receiver_id=receiver_id,
            content=content,
            is_from_admin=principal.is_admin,
        ),
        uow,
        clock,
    )


async def send_as(
    principal: Principal,
    data: SendMessageDTO,
    uow: UnitOfWork,
    clock: Clock = system_clock,
) -> Message:
    """Create a message on behalf of a client-supplied sender id."""
    assert_sender(principal, data.sender_id)
    return await send_message(principal, data.receiver_id, data.content, uow, clock)


async def get_messages_between(
    user_id: int,
    other_user_id: int | None,
    uow: UnitOfWork,
) -> list[Message]:
    """Messages of the pair, or every message touching ``user_id``.

    Both forms are ascending by ``(created_at, id)``.
    """
    if other_user_id is not None:
        messages = await uow.messages.list_between(user_id, other_user_id)
    else:
        messages = await uow.messages.list_for_user(user_id)
    return sorted(messages, key=lambda m: (m.created_at, m.id))


async def load_senders(messages: list[Message], uow: UnitOfWork) -> dict[int, User]:
    """Resolve the distinct senders of ``messages`` through the user directory."""
    senders: dict[int, User] = {}
    for sender_id in dict.fromkeys(m.sender_id for m in messages):
        user = await uow.users.get_by_id(sender_id)
        if user is not None:
            senders[sender_id] = user
    return senders
