"""GameBin HTTP application.

``create_app`` assembles the FastAPI app: CORS, the collection and form
routers, translation of domain errors into status codes, and a middleware
that tags every request with a correlation id.
"""

import math
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gamebin.core.config import get_settings
from gamebin.core.logging import bind_correlation_id, clear_context, configure_logging, get_logger
from gamebin.domain.exceptions import (
    DuplicateId,
    GameBinError,
    InvalidImport,
    InvalidOperation,
    NotFound,
    PermissionDenied,
    RateLimitExceeded,
    RemoteRequestFailed,
    UnknownCollection,
    UnsupportedFormat,
    ValidationFailed,
)
from gamebin.infrastructure.services import build_services

logger = get_logger(__name__)

# Status code per domain error; the first matching class wins
ERROR_STATUS_CODES: tuple[tuple[type[GameBinError], int], ...] = (
    (UnknownCollection, 404),
    (NotFound, 404),
    (DuplicateId, 409),
    (InvalidImport, 400),
    (UnsupportedFormat, 400),
    (InvalidOperation, 400),
    (ValidationFailed, 422),
    (PermissionDenied, 403),
    (RateLimitExceeded, 429),
    (RemoteRequestFailed, 502),
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the collection store on startup and sweep the cache while serving.

    The store and its request cache are published on ``app.state`` for the
    route dependencies.
    """
    settings = get_settings()
    configure_logging(settings)

    logger.info(
        "Starting GameBin",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        endpoint=settings.api_endpoint,
    )

    try:
        services = build_services(settings)
    except Exception as e:
        logger.error("Failed to build collection store", error=str(e))
        raise

    app.state.store = services.store
    app.state.cache = services.cache
    services.cache.start_sweeper(settings.cache_sweep_interval_seconds)

    yield

    logger.info("Shutting down GameBin", cache=services.cache.stats())
    await services.cache.stop_sweeper()


def create_app() -> FastAPI:
    """Return a fully wired GameBin application.

    API docs are served only in development.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="CRUD service for game-data collections stored in JSONBin",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-ID", "Retry-After"],
    )

    register_health_check(app)
    register_routes(app)
    register_exception_handlers(app)
    register_middleware(app)

    return app


def register_health_check(app: FastAPI) -> None:
    @app.get("/health", tags=["health"])
    async def health_check():
        """Liveness probe. Never contacts the remote document store."""
        return {
            "status": "healthy",
            "service": "GameBin",
            "version": get_settings().app_version,
        }


def register_routes(app: FastAPI) -> None:
    """Mount the collection and form routers under the API prefix."""
    from gamebin.infrastructure.api.routes import collections_router, forms_router

    settings = get_settings()
    collections_prefix = f"{settings.api_prefix}/collections"

    app.include_router(collections_router, prefix=collections_prefix, tags=["collections"])
    app.include_router(forms_router, prefix=collections_prefix, tags=["forms"])

    @app.get(settings.api_prefix, tags=["root"])
    async def api_root():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "api_version": "v1",
        }


def error_status_code(exc: GameBinError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


def register_exception_handlers(app: FastAPI) -> None:
    """Translate domain errors to JSON responses and hide unexpected ones."""

    @app.exception_handler(GameBinError)
    async def gamebin_exception_handler(request: Request, exc: GameBinError):
        status_code = error_status_code(exc)
        content: dict = {"error": type(exc).__name__, "detail": str(exc)}
        headers: dict[str, str] = {}

        if isinstance(exc, ValidationFailed):
            content["errors"] = exc.errors
        if isinstance(exc, RateLimitExceeded):
            # Whole seconds, at least one, so clients wait instead of retrying at once
            headers["Retry-After"] = str(max(1, math.ceil(exc.retry_after)))

        log = logger.warning if status_code >= 500 or status_code == 429 else logger.info
        log(
            "Request failed",
            path=str(request.url.path),
            method=request.method,
            status_code=status_code,
            error=str(exc),
            exc_type=type(exc).__name__,
        )
        return JSONResponse(status_code=status_code, content=content, headers=headers or None)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
            exc_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if get_settings().debug else "An unexpected error occurred",
            },
        )


def register_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def correlation_middleware(request: Request, call_next):
        """Bind a correlation id for the request and echo it in the response."""
        correlation_id = request.headers.get("X-Correlation-ID") or f"cid_{uuid.uuid4().hex[:12]}"
        bind_correlation_id(correlation_id)
        logger.info("Request started", method=request.method, path=request.url.path)

        try:
            response = await call_next(request)
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
            )
            response.headers["X-Correlation-ID"] = correlation_id
            return response
        finally:
            clear_context()


app = create_app()
