"""Per-connection protocol state machine and message delivery."""
from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from typing import Callable

from portal_chat.application.dto.message import SendMessageDTO
from portal_chat.application.dto.principal import Principal
from portal_chat.application.exceptions import (
    AppError,
    ForbiddenError,
    NotAuthenticatedError,
    PersistenceError,
    ValidationError,
)
from portal_chat.application.ports.clock import Clock, system_clock
from portal_chat.application.uow import UnitOfWork
from portal_chat.domain.entities.message import Message
from portal_chat.domain.value_objects.enums import ConnectionState
from portal_chat.infrastructure.ws.connection import Connection, Transport
from portal_chat.infrastructure.ws.protocol import (
    AuthEnvelope,
    SendEnvelope,
    TypingEnvelope,
    UnknownEnvelope,
    WsOutbound,
    decode_envelope,
)
from portal_chat.infrastructure.ws.registry import ConnectionRegistry
from portal_chat.services import message_service

logger = logging.getLogger(__name__)

UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]


class DeliveryEngine:
    """Drives connections through unauthenticated -> authenticated -> closed.

    ``handle`` never raises for envelope-level faults: malformed, unknown,
    unauthorized and unpersistable envelopes are logged and dropped while
    the connection stays open.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        uow_factory: UoWFactory,
        clock: Clock = system_clock,
    ) -> None:
        self.registry = registry
        self._uow_factory = uow_factory
        self._clock = clock

    def open(self, transport: Transport, principal: Principal | None) -> Connection:
        conn = Connection(transport, principal)
        logger.info(
            "WS connection opened: conn=%d session_user=%s",
            conn.id, principal.user_id if principal else None,
        )
        return conn

    def close(self, conn: Connection) -> None:
        if conn.closed:
            return
        conn.state = ConnectionState.CLOSED
        self.registry.unregister(conn)
        logger.info("WS connection closed: conn=%d user=%s", conn.id, conn.user_id)

    async def handle(self, conn: Connection, raw: str | bytes) -> None:
        if conn.closed:
            logger.debug("Ignoring envelope on closed %r", conn)
            return

        try:
            envelope = decode_envelope(raw)
        except ValidationError as exc:
            logger.warning("Malformed envelope on %r: %s", conn, exc.detail)
            return

        if isinstance(envelope, UnknownEnvelope):
            logger.info("Unknown envelope type %r on %r", envelope.type, conn)
            return

        try:
            if isinstance(envelope, AuthEnvelope):
                self._authenticate(conn, envelope)
                return

            if not conn.authenticated:
                raise NotAuthenticatedError(f"{envelope.type} envelope before auth")

            if isinstance(envelope, SendEnvelope):
                await self._on_send(conn, envelope)
            elif isinstance(envelope, TypingEnvelope):
                await self._on_typing(conn, envelope)
        except AppError as exc:
            logger.warning(
                "Dropped %s envelope on %r: %s: %s",
                envelope.type, conn, type(exc).__name__, exc.detail,
            )

    def _authenticate(self, conn: Connection, envelope: AuthEnvelope) -> None:
        if conn.authenticated:
            if envelope.user_id != conn.user_id:
                raise ForbiddenError(
                    f"connection already bound to user {conn.user_id}"
                )
            return

        principal = conn.principal
        if principal is None:
            raise NotAuthenticatedError("no verified session bound to transport")
        if envelope.user_id != principal.user_id:
            raise ForbiddenError(
                f"claimed user {envelope.user_id} does not match session user {principal.user_id}"
            )
        if envelope.user_role and envelope.user_role != principal.role:
            logger.warning(
                "Ignoring claimed role %r for user %d (session role %s)",
                envelope.user_role, principal.user_id, principal.role,
            )

        conn.user_id = principal.user_id
        conn.role = principal.role
        conn.state = ConnectionState.AUTHENTICATED
        self.registry.register(conn)
        logger.info("WS authenticated: conn=%d user=%d role=%s", conn.id, conn.user_id, conn.role)

    async def _on_send(self, conn: Connection, envelope: SendEnvelope) -> None:
        principal = conn.principal
        if principal is None:
            raise NotAuthenticatedError("no verified session bound to transport")
        data = SendMessageDTO(
            sender_id=envelope.sender_id,
            receiver_id=envelope.receiver_id,
            content=envelope.content,
            is_from_admin=envelope.is_from_admin,
        )
        try:
            async with self._uow_factory() as uow:
                msg = await message_service.send_as(principal, data, uow, self._clock)
        except OSError as exc:
            raise PersistenceError(f"message store unavailable: {exc}") from exc
        await self.deliver_message(msg)

    async def _on_typing(self, conn: Connection, envelope: TypingEnvelope) -> None:
        if envelope.sender_id is not None and envelope.sender_id != conn.user_id:
            raise ForbiddenError(f"typing as user {envelope.sender_id}")
        sender_id = conn.user_id
        if sender_id is None:
            raise NotAuthenticatedError("typing before auth")
        receiver_id = envelope.receiver_id
        await self.registry.broadcast_to(
            lambda c: c.user_id == receiver_id,
            WsOutbound.typing(sender_id, envelope.is_typing),
        )

    async def deliver_message(self, msg: Message) -> int:
        """Fan a stored message out to every live connection of its sender and receiver."""
        parties = {msg.sender_id, msg.receiver_id}
        sent = await self.registry.broadcast_to(
            lambda c: c.user_id in parties,
            WsOutbound.message(msg),
        )
        logger.debug("Message %d delivered to %d connection(s)", msg.id, sent)
        return sent
