"""
FastAPI application entry point.

This module sets up the FastAPI application with middleware,
routers, and configuration for the trivia admin API.
"""
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from routers import admin, cron
from core.config import settings
from core.database import check_db_connection
from core.logging import get_context_logger, setup_logging
from core.rate_limit import RateLimitMiddleware
import logging
import time

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"

# Create FastAPI app
app = FastAPI(
    title="Trivia Admin API",
    description="Admin backend for the trivia platform: content ingestion, calendar coverage, disputes, users and cron jobs",
    version=APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)


# CORS middleware
# Production: set CORS_ORIGINS env var (comma-separated)
# Development: DEBUG=True allows all origins
if settings.DEBUG:
    allowed_origins = ["*"]
elif settings.CORS_ORIGINS:
    allowed_origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",")]
else:
    allowed_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiting middleware (after CORS)
if settings.RATE_LIMIT_ENABLED:
    app.add_middleware(
        RateLimitMiddleware,
        default_limit=settings.RATE_LIMIT_PER_MINUTE,
        window=60  # 1 minute window
    )


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log each request and its outcome with timing."""
    start_time = time.time()
    log = get_context_logger(__name__, method=request.method, path=request.url.path)
    log.info(
        f"Request: {request.method} {request.url.path}",
        extra={"extra_fields": {"client_ip": request.client.host if request.client else None}},
    )

    try:
        response = await call_next(request)
    except Exception as e:
        log.error(f"Request failed: {request.method} {request.url.path}", exc_info=True, extra={"extra_fields": {"error": str(e)}})
        raise

    process_time = time.time() - start_time
    log.info(
        f"Response: {request.method} {request.url.path} - {response.status_code}",
        extra={"extra_fields": {
            "status_code": response.status_code,
            "process_time_ms": round(process_time * 1000, 2),
        }},
    )
    response.headers["X-Process-Time"] = str(process_time)
    return response


# Error handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=True,
        extra={
            "extra_fields": {
                "method": request.method,
                "path": request.url.path,
            }
        }
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.get("/health")
async def health():
    """
    Simple health check for load balancers and uptime monitors.

    Returns:
        - 200: Core systems operational
        - 503: Database unavailable
    """
    if not check_db_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "database": "unavailable",
            }
        )

    return {
        "status": "healthy",
        "timestamp": time.time(),
    }


@app.get("/health/detailed")
async def health_detailed():
    """
    Dependency status for monitoring dashboards.
    Always returns 200.
    """
    from core.cache import get_redis_client

    checks = {
        "database": {"status": "unknown", "latency_ms": None},
        "redis": {"status": "unknown", "latency_ms": None},
    }

    start = time.time()
    checks["database"]["status"] = "healthy" if check_db_connection() else "unhealthy"
    checks["database"]["latency_ms"] = round((time.time() - start) * 1000, 2)

    start = time.time()
    redis = get_redis_client()
    checks["redis"]["status"] = "healthy" if redis else "unavailable"
    checks["redis"]["latency_ms"] = round((time.time() - start) * 1000, 2)

    all_healthy = all(c["status"] == "healthy" for c in checks.values())

    return {
        "status": "healthy" if all_healthy else "degraded",
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": time.time(),
        "checks": checks,
    }


@app.get("/ping")
async def ping():
    """No dependencies checked; confirms the API is responding."""
    return {"pong": True}


# Include routers
app.include_router(admin.router)
app.include_router(cron.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_RELOAD,
    )
