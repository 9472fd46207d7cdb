from __future__ import annotations

from portal_chat.domain.entities.user import User
from portal_chat.domain.value_objects.enums import UserRole
from portal_chat.infrastructure.db.models.user import UserModel


def model_to_entity(model: UserModel) -> User:
    role = UserRole(model.role) if model.role in UserRole.__members__.values() else UserRole.STUDENT
    return User(
        id=model.id,
        email=model.email,
        first_name=model.first_name,
        last_name=model.last_name,
        role=role,
        student_id=model.student_id,
        is_active=bool(model.is_active),
    )
