from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, func, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portal_chat.domain.entities.message import Message
from portal_chat.infrastructure.db.errors import db_errors
from portal_chat.infrastructure.db.mappers import message as mapper
from portal_chat.infrastructure.db.models.message import MessageModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_between(self, user_id: int, other_user_id: int) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(
                or_(
                    and_(
                        MessageModel.sender_id == user_id,
                        MessageModel.receiver_id == other_user_id,
                    ),
                    and_(
                        MessageModel.sender_id == other_user_id,
                        MessageModel.receiver_id == user_id,
                    ),
                )
            )
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
        )
        with db_errors("list_between"):
            result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def list_for_user(self, user_id: int, *, newest_first: bool = False) -> list[Message]:
        stmt = select(MessageModel).where(
            or_(MessageModel.sender_id == user_id, MessageModel.receiver_id == user_id)
        )
        if newest_first:
            stmt = stmt.order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
        else:
            stmt = stmt.order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
        with db_errors("list_for_user"):
            result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def count_unread(self, receiver_id: int, *, sender_id: int | None = None) -> int:
        stmt = select(func.count()).select_from(MessageModel).where(
            MessageModel.receiver_id == receiver_id,
            MessageModel.is_read.is_(False),
        )
        if sender_id is not None:
            stmt = stmt.where(MessageModel.sender_id == sender_id)
        with db_errors("count_unread"):
            result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def count_all_unread(self) -> int:
        stmt = select(func.count()).select_from(MessageModel).where(
            MessageModel.is_read.is_(False),
        )
        with db_errors("count_all_unread"):
            result = await self._session.execute(stmt)
        return int(result.scalar_one())


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        sender_id: int,
        receiver_id: int | None,
        content: str,
        is_from_admin: bool,
        created_at: datetime,
    ) -> Message:
        stmt = (
            insert(MessageModel)
            .values(
                sender_id=sender_id,
                receiver_id=receiver_id,
                content=content,
                is_from_admin=is_from_admin,
                is_read=False,
                created_at=created_at,
            )
            .returning(MessageModel)
        )
        with db_errors("create_message"):
            result = await self._session.execute(stmt)
            row = result.scalar_one()
        return mapper.model_to_entity(row)

    async def mark_read(self, sender_id: int, receiver_id: int) -> int:
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.sender_id == sender_id,
                MessageModel.receiver_id == receiver_id,
                MessageModel.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        with db_errors("mark_read"):
            result = await self._session.execute(stmt)
        return result.rowcount or 0
