"""FastAPI dependency injection helpers."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated, AsyncIterator

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from portal_chat.application.dto.principal import Principal
from portal_chat.application.ports.auth import TokenVerifier
from portal_chat.config import settings
from portal_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from portal_chat.infrastructure.auth.jwks_verifier import JWKSVerifier
from portal_chat.infrastructure.db.session import uow_scope
from portal_chat.infrastructure.db.uow import SqlAlchemyUoW
from portal_chat.infrastructure.ws.engine import DeliveryEngine

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer()

# Raised by verifiers for bad signatures, expired sessions and malformed claims.
TOKEN_ERRORS = (jwt.PyJWTError, KeyError, ValueError, TypeError)


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with uow_scope() as uow:
        yield uow


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]


@lru_cache(maxsize=1)
def get_verifier() -> TokenVerifier:
    """Session token verifier selected by ``JWT_VERIFY_MODE``."""
    if settings.JWT_VERIFY_MODE == "jwks":
        if not settings.JWKS_URL:
            raise RuntimeError("JWKS_URL must be set when JWT_VERIFY_MODE=jwks")
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> Principal:
    try:
        return await get_verifier().verify(credentials.credentials)
    except TOKEN_ERRORS as exc:
        logger.debug("Rejected session token: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token",
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


async def get_current_admin(principal: CurrentPrincipal) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return principal


CurrentAdmin = Annotated[Principal, Depends(get_current_admin)]


def get_engine(request: Request) -> DeliveryEngine:
    return request.app.state.delivery_engine


EngineDep = Annotated[DeliveryEngine, Depends(get_engine)]
