from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from portal_chat.domain.entities.user import User
from portal_chat.infrastructure.db.errors import db_errors
from portal_chat.infrastructure.db.mappers import user as mapper
from portal_chat.infrastructure.db.models.user import UserModel


class UserReaderRepo:
    """User directory backed by the shared ``users`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: int) -> User | None:
        with db_errors("get_user"):
            model = await self._session.get(UserModel, user_id)
        return mapper.model_to_entity(model) if model else None
