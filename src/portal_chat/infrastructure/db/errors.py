from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from asyncpg import PostgresError
from sqlalchemy.exc import SQLAlchemyError

from portal_chat.application.exceptions import PersistenceError

logger = logging.getLogger(__name__)

# asyncpg connect failures (refused, reset, timeout) surface as OSError and
# pass through SQLAlchemy unwrapped.
DB_ERRORS: tuple[type[BaseException], ...] = (SQLAlchemyError, PostgresError, OSError)


@contextmanager
def db_errors(operation: str) -> Iterator[None]:
    """Re-raise driver/ORM failures as PersistenceError."""
    try:
        yield
    except DB_ERRORS as exc:
        logger.error("Database error during %s: %s", operation, exc)
        raise PersistenceError(f"{operation} failed") from exc
