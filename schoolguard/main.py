"""
FastAPI Application Entry Point
Authorization service with permission checks and override administration
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from schoolguard.api.v1 import router as api_v1_router
from schoolguard.core.config import settings
from schoolguard.core.exceptions import AppException
from schoolguard.core.logging import get_logger, setup_logging
from schoolguard.models.common import HealthResponse
from schoolguard.permissions.catalog import verify_wall

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan management"""
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Permissions fail-closed: {settings.PERMISSIONS_FAIL_CLOSED}")

    # A catalog that breaks the academic/financial wall must never serve requests
    if settings.VERIFY_WALL_ON_STARTUP:
        verify_wall()
        logger.info("Role catalog verified")

    from schoolguard.db.session import close_db, init_db

    try:
        await init_db()
        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")

    yield

    logger.info("Shutting down...")
    try:
        await close_db()
        logger.info("Shutdown complete")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


app = FastAPI(
    title=settings.APP_NAME,
    description="Role-based access control for school staff with per-user overrides",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan,
)


# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# GZip Middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)


# Exception Handlers
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle application-specific exceptions"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "details": exc.details,
                "timestamp": exc.timestamp,
            }
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions"""
    if isinstance(exc.detail, dict):
        error_code = exc.detail.get("code", "http_error")
        error_message = exc.detail.get("message", str(exc.detail))
        error_details = {k: v for k, v in exc.detail.items() if k not in ("code", "message")}
    else:
        error_code = str(exc.detail).lower().replace(" ", "_")
        error_message = str(exc.detail)
        error_details = None

    content = {
        "error": {
            "code": error_code,
            "message": error_message,
            "timestamp": None,
        }
    }

    if error_details:
        content["error"]["details"] = error_details

    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle validation errors"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "validation_error",
                "message": "Invalid request parameters",
                "details": {"errors": jsonable_encoder(exc.errors())},
                "timestamp": None,
            }
        },
    )


# Include routers
app.include_router(api_v1_router, prefix="/api/v1")


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs_url": "/docs" if settings.DEBUG else None,
    }


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint"""
    from schoolguard.db.session import check_connection

    database_ok = await check_connection()
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=settings.APP_VERSION,
        services={"database": "healthy" if database_ok else "unhealthy"},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "schoolguard.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info",
    )
