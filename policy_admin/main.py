from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from policy_admin.api import admins, auth, health, policies
from policy_admin.api.responses import error_response
from policy_admin.core.config import Settings, get_settings
from policy_admin.core.errors import AppError
from policy_admin.core.log import configure_logging
from policy_admin.db import SessionLocal, close_db, init_db
from policy_admin.middleware.request_log import RequestLoggingMiddleware
from policy_admin.services.bootstrap import ensure_default_admin

logger = logging.getLogger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


def format_validation_errors(errors: Sequence[Any]) -> list[str]:
    """Flatten Pydantic errors into readable messages, one per violated constraint."""
    issues: list[str] = []
    for err in errors:
        msg = str(err.get("msg", "Invalid value"))
        if msg.startswith(_VALUE_ERROR_PREFIX):
            # Our own validators already phrase a complete sentence
            issues.append(msg[len(_VALUE_ERROR_PREFIX) :])
            continue
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        issues.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return issues


def _install_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(AppError)
    async def _app_error(_request: Request, exc: AppError):
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(_request: Request, exc: RequestValidationError):
        return error_response(400, ", ".join(format_validation_errors(exc.errors())))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        extra = {"error": str(exc)} if settings.DEBUG else {}
        return error_response(500, "Something went wrong", **extra)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create tables and the bootstrap administrator on startup."""
    settings: Settings = app.state.settings
    await init_db()
    if settings.BOOTSTRAP_ADMIN:
        async with SessionLocal() as session:
            await ensure_default_admin(session, settings)
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    try:
        yield
    finally:
        await close_db()


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Application factory used by production runners and tests.

    It wires logging, middleware, error envelopes and all API routers.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _install_exception_handlers(app, settings)

    # Routers
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(admins.router)
    app.include_router(policies.router)

    @app.get("/")
    def root() -> dict[str, str]:
        """Simple JSON landing endpoint used by smoke tests."""
        return {
            "status": "ok",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "message": "Policy Admin API is running",
        }

    return app


# Default application instance used by tests and ASGI servers.
app = create_app()
