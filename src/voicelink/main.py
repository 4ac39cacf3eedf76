"""
FastAPI application entry point.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from voicelink import __version__
from voicelink.campaigns.router import router as campaigns_router
from voicelink.config import get_settings
from voicelink.shared.exceptions import AppError, RateLimitExceededError, ValidationError
from voicelink.shared.logging import correlation_id_var, get_logger, setup_logging
from voicelink.telephony.factory import close_telephony_provider
from voicelink.telephony.interface import TelephonyProviderError
from voicelink.twiml.router import router as twiml_router
from voicelink.voice.router import router as voice_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging and the uploads directory; release the telephony client on shutdown."""
    setup_logging()
    settings = get_settings()
    Path(settings.uploads_dir).mkdir(parents=True, exist_ok=True)
    logger.info("VoiceLink API up", extra={"env": settings.app_env})
    try:
        yield
    finally:
        close_telephony_provider()
        logger.info("VoiceLink API stopped")


def _error_body(message: str, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


def _validation_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    return [
        {
            "field": ".".join(map(str, err["loc"])),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]


def create_app() -> FastAPI:
    """Build the VoiceLink app: routers, error mapping, request ids and uploads."""
    settings = get_settings()

    app = FastAPI(
        title="VoiceLink API",
        description="Community information platform: IVR, voice/SMS and campaigns",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # AppError subclasses carry their own status code
    @app.exception_handler(AppError)
    async def _app_error(_: Request, exc: AppError) -> JSONResponse:
        headers: dict[str, str] = {}
        extra: dict[str, Any] = {}
        if isinstance(exc, ValidationError) and exc.errors:
            extra["errors"] = exc.errors
        if isinstance(exc, RateLimitExceededError):
            extra["retryAfter"] = exc.retry_after
            headers["Retry-After"] = str(exc.retry_after)
        if exc.status_code == status.HTTP_401_UNAUTHORIZED:
            headers["WWW-Authenticate"] = "Bearer"
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc), **extra),
            headers=headers or None,
        )

    @app.exception_handler(TelephonyProviderError)
    async def _telephony_error(request: Request, exc: TelephonyProviderError) -> JSONResponse:
        logger.error(
            "Telephony provider error",
            extra={
                "endpoint": request.url.path,
                "error_code": exc.error_code,
                "error": str(exc),
            },
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(str(exc)),
        )

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(_: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body("Request validation failed", errors=_validation_errors(exc)),
        )

    @app.middleware("http")
    async def correlation_id_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        token = correlation_id_var.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)
        response.headers["X-Request-ID"] = correlation_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    for router in (twiml_router, voice_router, campaigns_router):
        app.include_router(router)

    # Uploaded campaign audio; the directory is created at startup or on first upload
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.uploads_dir, check_dir=False),
        name="uploads",
    )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return "Hello from the VoiceLink backend"

    return app


app = create_app()
