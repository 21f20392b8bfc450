"""FastAPI application entry point.

Item Service - CRUD over PostgreSQL with a Redis side-cache, degrading to
an in-memory store when the database is unreachable at startup.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from item_service.errors import (
    BackendTransientError,
    CacheUnavailable,
    ItemServiceError,
    NotFound,
    ValidationFailed,
)
from item_service.routes import api_router
from item_service.schemas import BackendStatus, ErrorResponse
from item_service.services.degradation import Backends, initialize_backends
from item_service.settings import Settings, get_settings

logger = logging.getLogger("uvicorn.error")

# First match wins.
ERROR_STATUS: list[tuple[type[ItemServiceError], int]] = [
    (NotFound, 404),
    (ValidationFailed, 400),
    (CacheUnavailable, 503),
    (BackendTransientError, 500),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup probes the database and the cache once and stores the resulting
    service objects on app.state. Backends injected before startup are used
    as-is. Shutdown closes Redis and disposes the engine after uvicorn has
    drained in-flight requests.
    """
    settings: Settings = app.state.settings
    if app.state.backends is None:
        app.state.backends = await initialize_backends(settings)

    yield

    backends: Backends = app.state.backends
    await backends.close()
    logger.info("Backends closed")


def create_app(settings: Settings | None = None, backends: Backends | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Item CRUD API with cache-aside reads",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.backends = backends

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ItemServiceError)
    async def service_error_handler(request: Request, exc: ItemServiceError) -> JSONResponse:
        """Map service errors to the structured error format."""
        status_code = next((s for cls, s in ERROR_STATUS if isinstance(exc, cls)), 500)
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse.build(exc.code, exc.message, exc.detail),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed payloads and parameters are 400, not FastAPI's default 422."""
        return JSONResponse(
            status_code=400,
            content=ErrorResponse.build(
                ValidationFailed.code,
                "Request validation failed",
                jsonable_encoder(exc.errors()),
            ),
        )

    # Exception handler for structured error format
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse.build(
                "INTERNAL_ERROR",
                str(exc) if settings.debug else "Internal server error",
            ),
        )

    @app.get("/", tags=["health"])
    async def root() -> dict[str, str]:
        return {"message": f"{settings.app_name} {settings.app_version}"}

    # Liveness: never touches the store
    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/health/backends", tags=["health"], response_model=BackendStatus)
    async def backend_status(request: Request) -> BackendStatus:
        """Active backend modes decided at startup."""
        backends: Backends | None = request.app.state.backends
        if backends is None:
            raise RuntimeError("Backends not initialized")
        return BackendStatus(
            store=backends.policy.store_mode.value,
            cache=backends.policy.cache_mode.value,
        )

    # Include API routes
    app.include_router(api_router)

    return app


# Application instance
app = create_app()


def run() -> None:
    """Run with uvicorn; SIGTERM drains requests for SHUTDOWN_GRACE_SECONDS."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "item_service.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        timeout_graceful_shutdown=settings.shutdown_grace_seconds,
    )


if __name__ == "__main__":
    run()
