"""Per-transport connection state."""
from __future__ import annotations

import itertools
from typing import Protocol

from starlette.websockets import WebSocketState

from portal_chat.application.dto.principal import Principal
from portal_chat.domain.value_objects.enums import ConnectionState, UserRole

_ids = itertools.count(1)


class Transport(Protocol):
    """The subset of ``starlette.websockets.WebSocket`` the registry relies on."""

    client_state: WebSocketState
    application_state: WebSocketState

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


class Connection:
    """One live transport and the identity bound to it.

    ``principal`` is the identity verified at handshake time; ``user_id``
    and ``role`` are only set once the auth envelope has been accepted.
    """

    __slots__ = ("id", "transport", "principal", "user_id", "role", "state")

    def __init__(self, transport: Transport, principal: Principal | None = None) -> None:
        self.id = next(_ids)
        self.transport = transport
        self.principal = principal
        self.user_id: int | None = None
        self.role: UserRole | None = None
        self.state = ConnectionState.UNAUTHENTICATED

    @property
    def authenticated(self) -> bool:
        return self.state == ConnectionState.AUTHENTICATED

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    @property
    def is_open(self) -> bool:
        return (
            not self.closed
            and self.transport.client_state == WebSocketState.CONNECTED
            and self.transport.application_state == WebSocketState.CONNECTED
        )

    def __repr__(self) -> str:
        return f"<Connection #{self.id} user={self.user_id} state={self.state}>"
