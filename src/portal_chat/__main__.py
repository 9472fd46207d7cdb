"""Entrypoint: python -m portal_chat"""
from __future__ import annotations

import logging

import uvicorn

from portal_chat.api.middleware.correlation_id import CorrelationIdFilter
from portal_chat.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


def configure_logging(level: str = settings.LOG_LEVEL) -> None:
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)


def main() -> None:
    configure_logging()
    uvicorn.run(
        "portal_chat.app:create_app",
        factory=True,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
