"""In-process WebSocket connection registry."""
from __future__ import annotations

import logging
from typing import Callable

from portal_chat.application.exceptions import TransportError
from portal_chat.infrastructure.ws.connection import Connection
from portal_chat.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)

Predicate = Callable[[Connection], bool]


class ConnectionRegistry:
    """Tracks authenticated connections per user id.

    Only touched from the event loop thread, so no locking. Broadcasts take
    a snapshot of their recipients before awaiting any send.
    """

    def __init__(self) -> None:
        self._connections: dict[int, set[Connection]] = {}

    def register(self, conn: Connection) -> None:
        if conn.user_id is None or not conn.authenticated:
            raise ValueError(f"cannot register unauthenticated connection {conn!r}")
        self._connections.setdefault(conn.user_id, set()).add(conn)
        logger.debug(
            "WS registered: user=%s conn=%d (user_conns=%d)",
            conn.user_id, conn.id, len(self._connections[conn.user_id]),
        )

    def unregister(self, conn: Connection) -> None:
        if conn.user_id is None:
            return
        conns = self._connections.get(conn.user_id)
        if not conns or conn not in conns:
            return
        conns.discard(conn)
        if not conns:
            del self._connections[conn.user_id]
        logger.debug("WS unregistered: user=%s conn=%d", conn.user_id, conn.id)

    def connections_for(self, user_id: int) -> set[Connection]:
        return set(self._connections.get(user_id, ()))

    def user_ids(self) -> list[int]:
        return list(self._connections)

    def __len__(self) -> int:
        return sum(len(conns) for conns in self._connections.values())

    def __contains__(self, conn: object) -> bool:
        if not isinstance(conn, Connection) or conn.user_id is None:
            return False
        return conn in self._connections.get(conn.user_id, ())

    async def broadcast_to(self, predicate: Predicate, envelope: WsOutbound) -> int:
        """Send ``envelope`` to every open connection matching ``predicate``.

        Closed transports are skipped. A failed send drops that connection
        and the loop carries on. Returns the number of successful sends.
        """
        targets = [
            conn
            for conns in self._connections.values()
            for conn in conns
            if predicate(conn)
        ]
        if not targets:
            return 0

        raw = envelope.model_dump_json()
        sent = 0
        dead: list[Connection] = []
        for conn in targets:
            if not conn.is_open:
                continue
            try:
                await _send(conn, raw)
            except TransportError as exc:
                logger.info("WS send failed for %r: %s", conn, exc.detail)
                dead.append(conn)
            else:
                sent += 1
        for conn in dead:
            self.unregister(conn)
        return sent

    async def send_to_user(self, user_id: int, envelope: WsOutbound) -> int:
        return await self.broadcast_to(lambda c: c.user_id == user_id, envelope)

    async def teardown(self) -> None:
        """Close every registered transport and forget them."""
        conns = [conn for group in self._connections.values() for conn in group]
        self._connections.clear()
        for conn in conns:
            if not conn.is_open:
                continue
            try:
                await conn.transport.close(code=1001, reason="Server shutting down")
            except Exception:
                logger.debug("WS close failed for %r", conn, exc_info=True)
        if conns:
            logger.info("Connection registry torn down (%d connections)", len(conns))


async def _send(conn: Connection, raw: str) -> None:
    try:
        await conn.transport.send_text(raw)
    except Exception as exc:
        raise TransportError(str(exc) or type(exc).__name__) from exc
