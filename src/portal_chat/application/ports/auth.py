from __future__ import annotations

from typing import Protocol

from portal_chat.application.dto.principal import Principal


class TokenVerifier(Protocol):
    """Resolves a session token issued by the web login layer to a Principal."""

    async def verify(self, token: str) -> Principal: ...
