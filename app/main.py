"""FastAPI application entry point."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.api.v1.endpoints import auth, health
from app.api.v1.router import api_router
from app.core.config import settings
from app.core.database import DatabaseClient, init_database
from app.core.events import EventBus
from app.core.exceptions import (
    AppError,
    AuthFailed,
    DatabaseError,
    Forbidden,
    NotFound,
    ProcessingInProgress,
    TransportError,
    ValidationError,
)
from app.core.jwt import JWTVerifier
from app.core.page_cache import PageCache
from app.utils.logging import get_logger, set_log_level
from app.utils.responses import create_error_detail

LOGGER = get_logger(__name__, level=settings.log_level)

ERROR_STATUS = [
    (NotFound, status.HTTP_404_NOT_FOUND, "Not Found"),
    (AuthFailed, status.HTTP_401_UNAUTHORIZED, "Unauthorized"),
    (Forbidden, status.HTTP_403_FORBIDDEN, "Forbidden"),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation Error"),
    (ProcessingInProgress, status.HTTP_409_CONFLICT, "Processing In Progress"),
    (TransportError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Upstream Error"),
    (DatabaseError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Database Error"),
]


class RootResponse(BaseModel):
    """Root endpoint response payload."""

    message: str = Field(..., description="Service status message")
    version: str = Field(..., description="Running application version")
    docs: str = Field(..., description="Path to the interactive API docs")
    health: str = Field(..., description="Path to the health check endpoint")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    set_log_level(settings.log_level)
    if not settings.gemini_api_key:
        LOGGER.error("GEMINI_API_KEY is missing; AI classification and metadata extraction are disabled")

    LOGGER.info(
        "Starting application",
        extra={
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        },
    )

    db_client = DatabaseClient.from_settings(settings.db)
    app.state.db = db_client
    try:
        await asyncio.wait_for(
            init_database(db_client, create_tables=settings.db.auto_create_tables),
            timeout=settings.db_init_timeout,
        )
        LOGGER.info("Database initialized successfully")
    except asyncio.TimeoutError:
        LOGGER.error(f"Database initialization timed out after {settings.db_init_timeout}s")
    except Exception as e:
        LOGGER.error(f"Database initialization failed: {e}", exc_info=True)

    app.state.event_bus = EventBus()
    app.state.page_cache = PageCache(ttl_seconds=settings.page_cache_ttl)
    app.state.page_cache.attach(app.state.event_bus)
    app.state.jwt_verifier = JWTVerifier.from_settings(settings.supabase)

    yield

    LOGGER.info("Shutting down application")
    app.state.page_cache.detach()
    try:
        await db_client.disconnect()
    except Exception as e:
        LOGGER.error("Error closing database", exc_info=True, extra={"error": str(e)})


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Community management backend with AI-assisted document processing",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


@app.middleware("http")
async def add_correlation_id(request: Request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID", str(uuid4()))
    request.state.request_id = correlation_id
    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Convert application errors raised past the routes into problem details."""
    status_code, title = status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error"
    for error_type, mapped_status, mapped_title in ERROR_STATUS:
        if isinstance(exc, error_type):
            status_code, title = mapped_status, mapped_title
            break

    detail = exc.message
    if status_code >= 500:
        LOGGER.error(f"{type(exc).__name__}: {exc.message}", exc_info=exc, extra={"path": request.url.path})
        if not isinstance(exc, TransportError):
            detail = "Internal server error"

    error_detail = create_error_detail(title=title, status=status_code, detail=detail, request=request)
    return JSONResponse(status_code=status_code, content={"detail": error_detail.model_dump(mode="json")})


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID"],
)

app.include_router(api_router, prefix=settings.api_v1_prefix)
app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get(
    "/",
    response_model=RootResponse,
    tags=["Root"],
    summary="Root endpoint",
    description="Get basic information about the API",
    operation_id="get_public_root_metadata",
)
async def root() -> RootResponse:
    return RootResponse(
        message="Server is running",
        version=settings.app_version,
        docs="/docs",
        health="/health",
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
