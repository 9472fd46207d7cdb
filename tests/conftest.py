"""Shared test fixtures."""
from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator

import pytest
from starlette.websockets import WebSocketState

from portal_chat.application.dto.principal import Principal
from portal_chat.application.exceptions import PersistenceError
from portal_chat.domain.entities.message import Message
from portal_chat.domain.entities.user import User
from portal_chat.domain.value_objects.enums import UserRole
from portal_chat.infrastructure.ws.engine import DeliveryEngine
from portal_chat.infrastructure.ws.registry import ConnectionRegistry

ADMIN_ID = 1
STUDENT_ID = 2
OTHER_STUDENT_ID = 3

T0 = datetime(2024, 9, 2, 8, 0, tzinfo=timezone.utc)


def make_user(user_id: int, role: UserRole = UserRole.STUDENT) -> User:
    return User(
        id=user_id,
        email=f"user{user_id}@sao.edu",
        first_name=f"First{user_id}",
        last_name=f"Last{user_id}",
        role=role,
        student_id=None if role == UserRole.ADMIN else f"2024-{user_id:04d}",
    )


def make_message(
    *,
    message_id: int,
    sender_id: int = STUDENT_ID,
    receiver_id: int | None = ADMIN_ID,
    content: str = "hello",
    is_read: bool = False,
    created_at: datetime | None = None,
) -> Message:
    return Message(
        id=message_id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=content,
        is_from_admin=sender_id == ADMIN_ID,
        is_read=is_read,
        created_at=created_at or T0 + timedelta(minutes=message_id),
    )


class StepClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime = T0) -> None:
        self._next = start

    def now(self) -> datetime:
        current = self._next
        self._next += timedelta(seconds=1)
        return current


@dataclass
class FakeUserReader:
    _users: dict[int, User] = field(default_factory=dict)

    async def get_by_id(self, user_id: int) -> User | None:
        return self._users.get(user_id)


@dataclass
class FakeMessageStore:
    """In-memory message log implementing both reader and writer ports."""

    _messages: list[Message] = field(default_factory=list)
    fail: bool = False

    def _check(self) -> None:
        if self.fail:
            raise PersistenceError("store unavailable")

    def add(self, message: Message) -> None:
        self._messages.append(message)

    async def list_between(self, user_id: int, other_user_id: int) -> list[Message]:
        self._check()
        pair = {user_id, other_user_id}
        return sorted(
            (m for m in self._messages if {m.sender_id, m.receiver_id} == pair),
            key=lambda m: (m.created_at, m.id),
        )

    async def list_for_user(self, user_id: int, *, newest_first: bool = False) -> list[Message]:
        self._check()
        return sorted(
            (m for m in self._messages if user_id in (m.sender_id, m.receiver_id)),
            key=lambda m: (m.created_at, m.id),
            reverse=newest_first,
        )

    async def count_unread(self, receiver_id: int, *, sender_id: int | None = None) -> int:
        self._check()
        return sum(
            1
            for m in self._messages
            if m.receiver_id == receiver_id
            and not m.is_read
            and (sender_id is None or m.sender_id == sender_id)
        )

    async def count_all_unread(self) -> int:
        self._check()
        return sum(1 for m in self._messages if not m.is_read)

    async def create(
        self,
        sender_id: int,
        receiver_id: int | None,
        content: str,
        is_from_admin: bool,
        created_at: datetime,
    ) -> Message:
        self._check()
        msg = Message(
            id=len(self._messages) + 1,
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            is_from_admin=is_from_admin,
            is_read=False,
            created_at=created_at,
        )
        self._messages.append(msg)
        return msg

    async def mark_read(self, sender_id: int, receiver_id: int) -> int:
        self._check()
        updated = 0
        for i, m in enumerate(self._messages):
            if m.sender_id == sender_id and m.receiver_id == receiver_id and not m.is_read:
                self._messages[i] = Message(
                    id=m.id,
                    sender_id=m.sender_id,
                    receiver_id=m.receiver_id,
                    content=m.content,
                    is_from_admin=m.is_from_admin,
                    is_read=True,
                    created_at=m.created_at,
                )
                updated += 1
        return updated


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""

    users: FakeUserReader = field(default_factory=FakeUserReader)
    messages: FakeMessageStore = field(default_factory=FakeMessageStore)
    messages_w: FakeMessageStore | None = None
    _commits: int = 0

    def __post_init__(self) -> None:
        if self.messages_w is None:
            self.messages_w = self.messages

    @property
    def _committed(self) -> bool:
        return self._commits > 0

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._commits += 1

    async def rollback(self) -> None:
        pass


def fake_uow_factory(uow: FakeUoW):
    @asynccontextmanager
    async def _factory() -> AsyncIterator[FakeUoW]:
        yield uow

    return _factory


class UnreachableSession:
    """AsyncSession stand-in whose every round trip fails like a dead server."""

    def __init__(self, exc: BaseException) -> None:
        self._exc = exc

    async def get(self, *args, **kwargs):
        raise self._exc

    async def execute(self, *args, **kwargs):
        raise self._exc

    async def commit(self) -> None:
        raise self._exc

    async def flush(self) -> None:
        raise self._exc

    async def rollback(self) -> None:
        raise self._exc


class FakeTransport:
    """Stands in for starlette's WebSocket: records frames sent to it."""

    def __init__(self, *, fail: bool = False) -> None:
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[str] = []
        self.fail = fail
        self.close_code: int | None = None

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket is dead")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.close_code = code
        self.client_state = WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.DISCONNECTED

    def drop(self) -> None:
        self.client_state = WebSocketState.DISCONNECTED


@pytest.fixture
def admin_principal() -> Principal:
    return Principal(user_id=ADMIN_ID, role=UserRole.ADMIN)


@pytest.fixture
def student_principal() -> Principal:
    return Principal(user_id=STUDENT_ID, role=UserRole.STUDENT)


@pytest.fixture
def uow() -> FakeUoW:
    uow = FakeUoW()
    uow.users._users.update(
        {
            ADMIN_ID: make_user(ADMIN_ID, UserRole.ADMIN),
            STUDENT_ID: make_user(STUDENT_ID),
            OTHER_STUDENT_ID: make_user(OTHER_STUDENT_ID),
        }
    )
    return uow


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def engine(registry, uow, clock) -> DeliveryEngine:
    return DeliveryEngine(registry, fake_uow_factory(uow), clock)
