from __future__ import annotations

import logging

from portal_chat.application.uow import UnitOfWork
from portal_chat.domain.entities.conversation import Conversation
from portal_chat.domain.entities.message import Message
from portal_chat.domain.entities.user import User

logger = logging.getLogger(__name__)


async def list_conversations(owner_id: int, uow: UnitOfWork) -> list[Conversation]:
    """Build the owner's inbox: one entry per counterpart, most recent first.

    The first message seen for a counterpart in newest-first order becomes
    its ``last_message``, so the input is sorted here rather than trusting
    the store's ordering.
    """
    messages = await uow.messages.list_for_user(owner_id, newest_first=True)
    messages = sorted(messages, key=lambda m: (m.created_at, m.id), reverse=True)

    users: dict[int, User] = {}
    last: dict[int, Message] = {}
    unread: dict[int, int] = {}
    order: list[int] = []
    unknown: set[int] = set()

    for msg in messages:
        other_id = msg.other_party(owner_id)
        if other_id is None or other_id == owner_id or other_id in unknown:
            continue

        if other_id not in users:
            user = await uow.users.get_by_id(other_id)
            if user is None:
                logger.warning("Conversation counterpart %d missing from directory", other_id)
                unknown.add(other_id)
                continue
            users[other_id] = user
            last[other_id] = msg
            unread[other_id] = 0
            order.append(other_id)

        if msg.receiver_id == owner_id and not msg.is_read:
            unread[other_id] += 1

    return [
        Conversation(
            other_user=users[uid],
            last_message=last[uid],
            unread_count=unread[uid],
        )
        for uid in order
    ]
