"""FastAPI app with health, resource routers, and proper error handling.

Long-lived clients (realtime broadcaster, functions client, screenshot
storage, segment worker) are created in the lifespan and kept on
``app.state``.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from edge.client import FunctionsClient
from edge.realtime import RealtimeBroadcaster

from .config import settings
from .db import get_session_factory
from .errors import ServiceError, is_unique_violation
from .logging_config import setup_logging
from .routes import api_router
from .schemas import ErrorResponse, HealthResponse
from .services.segments import SegmentProcessingError, SegmentWorker
from .storage import LocalStorage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown logic."""
    # Startup
    setup_logging()
    logger.info(f"{settings.app_name} starting up ({settings.environment.value})")

    app.state.broadcaster = RealtimeBroadcaster()
    app.state.functions_client = FunctionsClient()
    app.state.storage = LocalStorage()
    app.state.segment_worker = SegmentWorker(
        get_session_factory(),
        app.state.functions_client,
        app.state.broadcaster,
    )

    yield

    # Shutdown
    logger.info("Application shutting down")
    await app.state.segment_worker.drain()
    await app.state.broadcaster.drain()
    await app.state.functions_client.aclose()
    await app.state.broadcaster.aclose()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Notifications, help articles, company segments and web screenshots",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Handle service errors with their own status code."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error} on {request.url.path}: {exc.detail}")
    else:
        logger.info(f"{exc.error} on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.error, detail=exc.detail).model_dump(),
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    """Handle constraint violations that escaped the services."""
    logger.error(f"Integrity error on {request.url.path}: {exc.orig}")
    detail = (
        "A record with these values already exists"
        if is_unique_violation(exc)
        else "The request conflicts with existing data"
    )
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=ErrorResponse(error="conflict", detail=detail).model_dump(),
    )


@app.exception_handler(SegmentProcessingError)
async def segment_processing_error_handler(request: Request, exc: SegmentProcessingError):
    """Handle segment processing errors."""
    logger.error(f"Segment processing error: {exc}")
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content=ErrorResponse(
            error="segment_processing_error",
            detail=str(exc),
        ).model_dump(),
    )


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        version=settings.version,
    )


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "app": settings.app_name,
        "version": settings.version,
        "endpoints": {
            "health": "/health",
            "me": "/users/me",
            "users": "/users",
            "customers": "/customers",
            "roles": "/roles",
            "permissions": "/permissions",
            "system_modules": "/system-modules",
            "notifications": "/notifications",
            "notification_templates": "/notification-templates",
            "article_categories": "/article-categories",
            "articles": "/articles",
            "customer_success": "/customer-success",
            "segments": "/segments",
            "industries": "/industries",
            "device_profiles": "/device-profiles",
            "capture_requests": "/capture-requests",
            "captures": "/captures",
            "colors": "/colors/extract",
            "llm_jobs": "/llm-jobs",
            "docs": "/docs",
        },
    }


app.include_router(api_router)
