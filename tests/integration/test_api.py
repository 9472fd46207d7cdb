"""Integration tests for the REST and websocket surfaces (in-memory UoW via overrides)."""
from __future__ import annotations

import jwt
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from portal_chat.api.deps import get_uow
from portal_chat.app import create_app
from portal_chat.config import settings
from portal_chat.domain.value_objects.enums import UserRole
from portal_chat.infrastructure.db.uow import SqlAlchemyUoW
from tests.conftest import (
    ADMIN_ID,
    OTHER_STUDENT_ID,
    STUDENT_ID,
    FakeUoW,
    UnreachableSession,
    fake_uow_factory,
    make_message,
    make_user,
)


def _make_token(sub: int = STUDENT_ID, role: str = "student") -> str:
    return jwt.encode(
        {"sub": str(sub), "role": role},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def _headers(sub: int = STUDENT_ID, role: str = "student") -> dict[str, str]:
    return {"Authorization": f"Bearer {_make_token(sub, role)}"}


@pytest.fixture
def app_with_uow():
    uow = FakeUoW()
    uow.users._users.update(
        {
            ADMIN_ID: make_user(ADMIN_ID, UserRole.ADMIN),
            STUDENT_ID: make_user(STUDENT_ID),
            OTHER_STUDENT_ID: make_user(OTHER_STUDENT_ID),
        }
    )
    app = create_app(uow_factory=fake_uow_factory(uow))

    async def _override():
        yield uow

    app.dependency_overrides[get_uow] = _override
    return app, uow


@pytest.fixture
def client(app_with_uow):
    app, _ = app_with_uow
    # One portal for every request and socket, so they share the event loop.
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def uow(app_with_uow):
    _, uow = app_with_uow
    return uow


def _join(ws, user_id: int, role: str = "student") -> None:
    """Authenticate and wait until the server has processed it.

    A typing signal addressed to oneself only comes back once the
    connection is registered.
    """
    ws.send_json({"type": "auth", "userId": user_id, "userRole": role})
    ws.send_json({"type": "typing", "senderId": user_id, "receiverId": user_id, "isTyping": False})
    echo = ws.receive_json()
    assert echo == {"type": "typing", "data": {"senderId": user_id, "isTyping": False}}


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_request_id_is_echoed(client):
    resp = client.get("/healthz", headers={"X-Request-ID": "abc123"})
    assert resp.headers["X-Request-ID"] == "abc123"


def test_unauthorized_returns_error(client):
    resp = client.get("/api/conversations")
    assert resp.status_code in (401, 403)


def test_invalid_token_is_rejected(client):
    resp = client.get("/api/conversations", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401


def test_post_message(client, uow):
    resp = client.post(
        "/api/messages",
        headers=_headers(),
        json={"receiverId": ADMIN_ID, "content": "hello world"},
    )

    assert resp.status_code == 201
    data = resp.json()
    assert data["content"] == "hello world"
    assert data["senderId"] == STUDENT_ID
    assert data["isFromAdmin"] is False
    assert data["isRead"] is False
    assert len(uow.messages._messages) == 1


def test_post_empty_message_is_rejected(client, uow):
    resp = client.post(
        "/api/messages",
        headers=_headers(),
        json={"receiverId": ADMIN_ID, "content": ""},
    )

    assert resp.status_code == 422
    assert uow.messages._messages == []


def test_get_messages_with_counterpart(client, uow):
    uow.messages.add(make_message(message_id=1, sender_id=STUDENT_ID, receiver_id=ADMIN_ID))
    uow.messages.add(make_message(message_id=2, sender_id=ADMIN_ID, receiver_id=STUDENT_ID))
    uow.messages.add(make_message(message_id=3, sender_id=OTHER_STUDENT_ID, receiver_id=ADMIN_ID))

    resp = client.get(f"/api/messages?with={ADMIN_ID}", headers=_headers())

    assert resp.status_code == 200
    data = resp.json()
    assert [m["id"] for m in data] == [1, 2]
    assert data[1]["sender"]["role"] == "admin"
    assert data[0]["sender"]["firstName"] == f"First{STUDENT_ID}"


def test_admin_inbox_without_filter(client, uow):
    uow.messages.add(make_message(message_id=1, sender_id=STUDENT_ID, receiver_id=ADMIN_ID))
    uow.messages.add(make_message(message_id=2, sender_id=OTHER_STUDENT_ID, receiver_id=ADMIN_ID))

    resp = client.get("/api/messages", headers=_headers(ADMIN_ID, "admin"))

    assert [m["id"] for m in resp.json()] == [1, 2]


def test_list_conversations(client, uow):
    uow.messages.add(make_message(message_id=1, sender_id=STUDENT_ID, receiver_id=ADMIN_ID))
    uow.messages.add(
        make_message(message_id=2, sender_id=ADMIN_ID, receiver_id=STUDENT_ID, is_read=True)
    )

    resp = client.get("/api/conversations", headers=_headers(ADMIN_ID, "admin"))

    assert resp.status_code == 200
    data = resp.json()
    assert len(data) == 1
    assert data[0]["user"]["id"] == STUDENT_ID
    assert data[0]["unreadCount"] == 1
    assert data[0]["lastMessage"]["id"] == 2


def test_mark_read_then_unread_count(client, uow):
    uow.messages.add(make_message(message_id=1, sender_id=STUDENT_ID, receiver_id=ADMIN_ID))
    uow.messages.add(make_message(message_id=2, sender_id=STUDENT_ID, receiver_id=ADMIN_ID))
    admin = _headers(ADMIN_ID, "admin")

    assert client.get("/api/messages/unread-count", headers=admin).json() == {"count": 2}

    resp = client.put("/api/messages/mark-read", headers=admin, json={"senderId": STUDENT_ID})
    assert resp.status_code == 200
    assert resp.json()["updated"] == 2

    again = client.put("/api/messages/mark-read", headers=admin, json={"senderId": STUDENT_ID})
    assert again.json()["updated"] == 0
    assert client.get("/api/messages/unread-count", headers=admin).json() == {"count": 0}


def test_total_unread_is_admin_only(client, uow):
    uow.messages.add(make_message(message_id=1, sender_id=STUDENT_ID, receiver_id=ADMIN_ID))

    assert client.get("/api/admin/messages/unread-count", headers=_headers()).status_code == 403
    resp = client.get("/api/admin/messages/unread-count", headers=_headers(ADMIN_ID, "admin"))
    assert resp.json() == {"count": 1}


def test_ws_rejects_missing_token(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws"):
            pass
    assert exc_info.value.code == settings.WS_AUTH_CLOSE_CODE


def test_ws_message_round_trip(client, uow):
    with client.websocket_connect(f"/ws?token={_make_token(ADMIN_ID, 'admin')}") as admin_ws, \
            client.websocket_connect(f"/ws?token={_make_token(STUDENT_ID)}") as student_ws:
        _join(admin_ws, ADMIN_ID, "admin")
        _join(student_ws, STUDENT_ID)

        student_ws.send_json({
            "type": "message",
            "senderId": STUDENT_ID,
            "receiverId": ADMIN_ID,
            "content": "hi",
            "isFromAdmin": False,
        })

        to_student = student_ws.receive_json()
        to_admin = admin_ws.receive_json()

    assert to_student["type"] == to_admin["type"] == "message"
    assert to_student["data"]["id"] == to_admin["data"]["id"]
    assert to_admin["data"]["isRead"] is False
    assert len(uow.messages._messages) == 1


def test_ws_survives_garbage(client, uow):
    with client.websocket_connect(f"/ws?token={_make_token(STUDENT_ID)}") as ws:
        ws.send_text("definitely not json")
        ws.send_json({"type": "presence"})
        _join(ws, STUDENT_ID)

        ws.send_json({"type": "message", "senderId": STUDENT_ID, "receiverId": ADMIN_ID, "content": "ok"})
        assert ws.receive_json()["data"]["content"] == "ok"


def test_rest_post_is_delivered_to_live_sockets(client, uow):
    with client.websocket_connect(f"/ws?token={_make_token(STUDENT_ID)}") as ws:
        _join(ws, STUDENT_ID)

        resp = client.post(
            "/api/messages",
            headers=_headers(ADMIN_ID, "admin"),
            json={"receiverId": STUDENT_ID, "content": "Your form was approved."},
        )
        pushed = ws.receive_json()

    assert pushed["data"]["id"] == resp.json()["id"]
    assert pushed["data"]["isFromAdmin"] is True


def test_admin_connection_stats(client):
    resp = client.get("/api/admin/connections", headers=_headers(ADMIN_ID, "admin"))
    assert resp.json() == {"connections": 0, "users": 0}


def test_unreachable_database_maps_to_503():
    app = create_app()

    async def _dead_store():
        async with SqlAlchemyUoW(UnreachableSession(ConnectionRefusedError(111, "refused"))) as uow:
            yield uow

    app.dependency_overrides[get_uow] = _dead_store
    with TestClient(app, raise_server_exceptions=False) as test_client:
        resp = test_client.get("/api/messages/unread-count", headers=_headers())

    assert resp.status_code == 503
    assert resp.json() == {"detail": "Message store unavailable"}
