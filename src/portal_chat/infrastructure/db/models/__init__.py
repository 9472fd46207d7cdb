"""Import all models so metadata.create_all can discover them via Base.metadata."""
from portal_chat.infrastructure.db.models.message import MessageModel
from portal_chat.infrastructure.db.models.user import UserModel

__all__ = [
    "MessageModel",
    "UserModel",
]
