from __future__ import annotations

from fastapi import APIRouter, Query

from portal_chat.api.deps import CurrentPrincipal, EngineDep, UoWDep
from portal_chat.api.v1.schemas.common import CountResponse
from portal_chat.api.v1.schemas.message import (
    MarkReadRequest,
    MarkReadResponse,
    MessageResponse,
    MessageWithSenderResponse,
    SendMessageRequest,
)
from portal_chat.api.v1.schemas.user import UserResponse
from portal_chat.services import message_service, read_state_service

router = APIRouter(prefix="/api/messages", tags=["messages"])


@router.get("", response_model=list[MessageWithSenderResponse])
async def list_messages(
    principal: CurrentPrincipal,
    uow: UoWDep,
    with_user_id: int | None = Query(None, alias="with"),
) -> list[MessageWithSenderResponse]:
    messages = await message_service.get_messages_between(
        principal.user_id, with_user_id, uow,
    )
    senders = await message_service.load_senders(messages, uow)
    return [
        MessageWithSenderResponse(
            **MessageResponse.model_validate(m).model_dump(),
            sender=UserResponse.model_validate(senders[m.sender_id]) if m.sender_id in senders else None,
        )
        for m in messages
    ]


@router.post("", response_model=MessageResponse, status_code=201)
async def send_message(
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    engine: EngineDep,
) -> MessageResponse:
    msg = await message_service.send_message(
        principal, body.receiver_id, body.content, uow,
    )
    await engine.deliver_message(msg)
    return MessageResponse.model_validate(msg)


@router.put("/mark-read", response_model=MarkReadResponse)
async def mark_read(
    body: MarkReadRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MarkReadResponse:
    updated = await read_state_service.mark_read(body.sender_id, principal.user_id, uow)
    return MarkReadResponse(message="Messages marked as read", updated=updated)


@router.get("/unread-count", response_model=CountResponse)
async def unread_count(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> CountResponse:
    count = await read_state_service.unread_count_for(principal.user_id, uow)
    return CountResponse(count=count)
