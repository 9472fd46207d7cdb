from __future__ import annotations

from enum import StrEnum


class UserRole(StrEnum):
    STUDENT = "student"
    ADMIN = "admin"


class EnvelopeType(StrEnum):
    AUTH = "auth"
    MESSAGE = "message"
    TYPING = "typing"


class ConnectionState(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"
