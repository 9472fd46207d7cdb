from __future__ import annotations

import logging

from portal_chat.application.dto.principal import Principal
from portal_chat.application.policies.permissions import assert_admin
from portal_chat.application.uow import UnitOfWork

logger = logging.getLogger(__name__)


async def mark_read(
    sender_id: int,
    receiver_id: int,
    uow: UnitOfWork,
) -> int:
    """Mark every unread message from ``sender_id`` to ``receiver_id`` as read.

    Idempotent: a second call flips nothing and returns 0.
    """
    updated = await uow.messages_w.mark_read(sender_id, receiver_id)
    await uow.commit()
    if updated:
        logger.debug("Marked %d messages %d -> %d as read", updated, sender_id, receiver_id)
    return updated


async def unread_count_for(user_id: int, uow: UnitOfWork) -> int:
    return await uow.messages.count_unread(user_id)


async def unread_count_from(sender_id: int, receiver_id: int, uow: UnitOfWork) -> int:
    return await uow.messages.count_unread(receiver_id, sender_id=sender_id)


async def total_unread_count(principal: Principal, uow: UnitOfWork) -> int:
    """Unread messages across every inbox (staff overview)."""
    assert_admin(principal)
    return await uow.messages.count_all_unread()
