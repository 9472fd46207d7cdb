from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ValidationError(AppError):
    pass


class NotAuthenticatedError(AppError):
    """Envelope or request arrived before the caller's identity was established."""


class PersistenceError(AppError):
    """The message store could not complete the operation."""


class TransportError(AppError):
    """A send to a live connection failed."""
