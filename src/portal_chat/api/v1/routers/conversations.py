from __future__ import annotations

from fastapi import APIRouter

from portal_chat.api.deps import CurrentPrincipal, UoWDep
from portal_chat.api.v1.schemas.conversation import ConversationResponse
from portal_chat.api.v1.schemas.message import MessageResponse
from portal_chat.api.v1.schemas.user import UserResponse
from portal_chat.services import conversation_service

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[ConversationResponse]:
    convs = await conversation_service.list_conversations(principal.user_id, uow)
    return [
        ConversationResponse(
            user=UserResponse.model_validate(c.other_user),
            last_message=MessageResponse.model_validate(c.last_message),
            unread_count=c.unread_count,
        )
        for c in convs
    ]
