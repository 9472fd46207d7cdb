"""Seed development data: creates the tables, a staff account, a student and a short thread."""
from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal_chat.application.dto.message import SendMessageDTO
from portal_chat.infrastructure.db.models.user import UserModel
from portal_chat.infrastructure.db.session import AsyncSessionLocal, create_tables
from portal_chat.infrastructure.db.uow import SqlAlchemyUoW
from portal_chat.services import message_service

logger = logging.getLogger(__name__)

# Login is owned by the web session layer; seeded accounts cannot sign in until it sets a password.
_UNUSABLE_PASSWORD = "!"


async def _get_or_create_user(session: AsyncSession, email: str, **fields: object) -> UserModel:
    result = await session.execute(select(UserModel).where(UserModel.email == email))
    user = result.scalar_one_or_none()
    if user is None:
        user = UserModel(email=email, password=_UNUSABLE_PASSWORD, **fields)
        session.add(user)
        await session.flush()
    return user


async def seed() -> None:
    await create_tables()

    async with AsyncSessionLocal() as session:
        admin = await _get_or_create_user(
            session, "admin@sao.edu", first_name="SAO", last_name="Administrator", role="admin",
        )
        student = await _get_or_create_user(
            session, "student@sao.edu", first_name="Dana", last_name="Reyes",
            role="student", student_id="2024-0001",
        )
        await session.commit()

        uow = SqlAlchemyUoW(session)
        thread = [
            (student.id, admin.id, False, "Hi, I need help with my enrollment form."),
            (admin.id, student.id, True, "Sure. Which section is giving you trouble?"),
            (student.id, admin.id, False, "The scholarship declaration part."),
        ]
        for sender_id, receiver_id, is_admin, content in thread:
            await message_service.create_message(
                SendMessageDTO(sender_id, receiver_id, content, is_admin), uow,
            )

        logger.info("Seeded users %d/%d with %d messages", admin.id, student.id, len(thread))


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
