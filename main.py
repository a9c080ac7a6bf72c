"""
KennelBoard Backend API Server

FastAPI application for the kennel occupancy and booking-segment scheduler.
Serves the kennel catalog, booking placement commands and occupancy views.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from datetime import datetime, timezone
import time

from app import config
from app.api.routes import bookings, kennels, occupancy
from app.database import close_redis, create_tables, init_redis
from app.services.errors import (
    CapacityExceededError,
    ConflictError,
    EngineError,
    GuardError,
    InactiveResourceError,
    NotFoundError,
    ValidationError,
)
from app.services.scheduler import start_scheduler, stop_scheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InactiveResourceError: status.HTTP_409_CONFLICT,
    CapacityExceededError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
    GuardError: status.HTTP_409_CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting KennelBoard API server...")

    if config.AUTO_CREATE_TABLES:
        await create_tables()
        logger.info("Database tables created")

    if config.REDIS_URL:
        await init_redis()
        logger.info("Redis connected, distributed kennel locks enabled")

    if config.ENABLE_SCHEDULER:
        start_scheduler()
        logger.info("Background scheduler started")

    yield

    # Shutdown
    logger.info("Shutting down KennelBoard API server...")
    if config.ENABLE_SCHEDULER:
        stop_scheduler()
        logger.info("Background scheduler stopped")
    await close_redis()


# Create FastAPI application
app = FastAPI(
    title="KennelBoard API",
    description="Kennel occupancy and booking-segment scheduling",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)


# CORS middleware for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing"""
    start_time = time.time()

    # Process request
    response = await call_next(request)

    # Calculate duration
    duration_ms = (time.time() - start_time) * 1000

    # Log request
    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {duration_ms:.2f}ms"
    )

    return response


# Engine rejection handler
@app.exception_handler(EngineError)
async def engine_exception_handler(request: Request, exc: EngineError):
    """Map typed scheduling errors to HTTP status codes"""
    status_code = ERROR_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.info(f"{request.method} {request.url.path} rejected: {exc.error_kind}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_payload())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all uncaught exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "errorKind": "InternalError",
            "message": "An internal server error occurred",
        }
    )


# Validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "errorKind": ValidationError.error_kind,
            "message": f"Request validation failed: {problems}",
        }
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns server status and version information.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
        "service": "kennelboard-api",
        "turnoverPolicy": config.TURNOVER_POLICY,
    }


# Include routers
app.include_router(kennels.router)
app.include_router(bookings.router)
app.include_router(bookings.segments_router)
app.include_router(occupancy.router)


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """API root endpoint"""
    return {
        "name": "KennelBoard API",
        "version": "1.0.0",
        "description": "Kennel occupancy and booking-segment scheduling",
        "docs": "/api/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
