from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portal_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from portal_chat.api.middleware.metrics import RequestTimingMiddleware
from portal_chat.api.v1.routers import (
    admin,
    conversations,
    health,
    messages,
    ws,
)
from portal_chat.application.exceptions import (
    AppError,
    ForbiddenError,
    NotAuthenticatedError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from portal_chat.config import settings
from portal_chat.infrastructure.db.session import uow_scope
from portal_chat.infrastructure.ws.engine import DeliveryEngine, UoWFactory
from portal_chat.infrastructure.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    engine: DeliveryEngine = app.state.delivery_engine
    logger.info("Messaging core started (ws path=%s)", settings.WS_PATH)

    yield

    await engine.registry.teardown()
    logger.info("Messaging core stopped")


def create_app(uow_factory: UoWFactory | None = None) -> FastAPI:
    app = FastAPI(
        title="Student Portal Messaging",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.delivery_engine = DeliveryEngine(
        ConnectionRegistry(),
        uow_factory or uow_scope,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(admin.router)
    app.include_router(ws.router)

    return app


_STATUS_BY_ERROR: dict[type[AppError], int] = {
    NotFoundError: 404,
    ForbiddenError: 403,
    NotAuthenticatedError: 401,
    ValidationError: 422,
    PersistenceError: 503,
}


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(_req: Request, exc: AppError) -> JSONResponse:
        status_code = next(
            (code for cls, code in _STATUS_BY_ERROR.items() if isinstance(exc, cls)),
            400,
        )
        if isinstance(exc, PersistenceError):
            logger.error("Persistence failure: %s", exc.detail)
            return JSONResponse(status_code=status_code, content={"detail": "Message store unavailable"})
        return JSONResponse(status_code=status_code, content={"detail": exc.detail})
