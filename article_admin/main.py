"""FastAPI application entry point."""

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError

from .config import settings
from .database import dispose_engine, warmup_connection_pool
from .routers import article_references_router, auth_router
from .schemas.violation import ViolationList
from .services.minio_service import MinIOServiceError, minio_service
from .services.reference_validation import ReferenceValidationError
from .services.storage_base import StorageServiceError

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown tasks."""
    await warmup_connection_pool()

    if settings.storage_backend == "minio":
        logger.info("Checking MinIO bucket '%s'...", settings.minio_bucket)
        try:
            minio_service.ensure_bucket_exists()
            logger.info("MinIO bucket ready")
        except MinIOServiceError as e:
            # The bucket is checked again on the first upload
            logger.warning("MinIO bucket check failed: %s", e)
    else:
        logger.info("Using local storage at %s", settings.local_storage_path)

    logger.info(
        "Reference downloads use the '%s' strategy", settings.reference_download_strategy
    )

    yield

    logger.info("Shutting down")
    await dispose_engine()


app = FastAPI(
    title="Article Admin API",
    description="Admin API for managing files attached to articles",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ReferenceValidationError)
async def reference_validation_handler(request: Request, exc: ReferenceValidationError):
    """Render collected violations as a 400 response."""
    body = ViolationList(detail=exc.detail, violations=exc.violations)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=body.model_dump(mode="json", by_alias=True),
    )


@app.exception_handler(StorageServiceError)
async def storage_error_handler(request: Request, exc: StorageServiceError):
    """Storage failures are not retried; report them as server errors."""
    logger.error("Storage error on %s %s: %s", request.method, request.url, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Storage backend error"},
    )


# Database pool exhaustion handler - return 503 so clients can retry
@app.exception_handler(SQLAlchemyTimeoutError)
async def db_pool_exhausted_handler(request: Request, exc: SQLAlchemyTimeoutError):
    """Handle database connection pool exhaustion with 503 Service Unavailable."""
    logger.warning(
        "Database pool exhausted on %s %s: %s", request.method, request.url, exc
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "detail": "Service temporarily unavailable. Please retry.",
            "retry_after": 5,
        },
        headers={"Retry-After": "5"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log all unhandled exceptions with full traceback."""
    logger.error("Unhandled exception on %s %s:", request.method, request.url)
    logger.error("Exception type: %s", type(exc).__name__)
    logger.error("Traceback:\n%s", traceback.format_exc())
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# Include API routers
app.include_router(auth_router)
app.include_router(article_references_router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {
        "status": "healthy",
        "service": "Article Admin API",
        "version": "1.0.0",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "storage": settings.storage_backend,
        "download_strategy": settings.reference_download_strategy,
    }
