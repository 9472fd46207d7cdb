from __future__ import annotations

from fastapi import APIRouter

from portal_chat.api.deps import CurrentAdmin, EngineDep, UoWDep
from portal_chat.api.v1.schemas.common import CountResponse
from portal_chat.services import read_state_service

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/messages/unread-count", response_model=CountResponse)
async def total_unread(
    admin: CurrentAdmin,
    uow: UoWDep,
) -> CountResponse:
    count = await read_state_service.total_unread_count(admin, uow)
    return CountResponse(count=count)


@router.get("/connections")
async def live_connections(admin: CurrentAdmin, engine: EngineDep) -> dict[str, int]:
    registry = engine.registry
    return {"connections": len(registry), "users": len(registry.user_ids())}
