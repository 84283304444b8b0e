from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from sopmanager.core.config import settings
from sopmanager.core.database import init_db, close_db
from sopmanager.core.errors import ErrorCode, resolve_locale
from sopmanager.core.exceptions import SOPManagerError, error_response
from sopmanager.core.logging_config import logger
from sopmanager.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
)
from sopmanager.core.rate_limiter import limiter, rate_limit_exceeded_handler
from sopmanager.api.v1.router import api_router
from sopmanager.services.cache_service import cache_service
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIASGIMiddleware


async def validate_critical_config():
    """Validate critical configuration at startup - fail fast if missing"""
    errors = []
    warnings = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")

    if not settings.SECRET_KEY or settings.SECRET_KEY == "CHANGE_ME":
        errors.append("SECRET_KEY is not set or using default value")

    if not settings.JWT_SECRET_KEY or settings.JWT_SECRET_KEY == "CHANGE_ME":
        errors.append("JWT_SECRET_KEY is not set or using default value")

    if settings.CACHE_ENABLED and not settings.REDIS_URL:
        warnings.append("REDIS_URL not set - translation bundles will not be cached in Redis")

    if not settings.SESSION_COOKIE_SECURE and not settings.is_dev_mode():
        warnings.append("SESSION_COOKIE_SECURE is off outside development")

    if errors:
        for err in errors:
            logger.critical(f"[Startup] CRITICAL: {err}")
        raise RuntimeError(f"Missing critical configuration: {', '.join(errors)}")

    for warn in warnings:
        logger.warning(f"[Startup] WARNING: {warn}")

    logger.info("[Startup] Critical configuration validated")
    return True


async def ensure_database_ready():
    """Create missing tables. The app still starts if the database is down."""
    try:
        await init_db()
        logger.info("[Startup] Database tables ready")
        return True
    except Exception as e:
        logger.error(f"[Startup] Failed to ensure database ready: {e}")
        return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"API Version: {settings.API_VERSION}")
    logger.info("=" * 60)

    await validate_critical_config()

    db_ready = await ensure_database_ready()
    if not db_ready:
        logger.warning("[Startup] Database not ready - requests will fail until it is reachable")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await cache_service.close()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Bilingual (English/Thai) SOP, training and translation management for restaurant staff",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    redirect_slashes=False
)

# Add rate limiter state and exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Add middleware (order matters - last added runs first)
# 1. Default per-minute rate limit for routes without their own decorator
app.add_middleware(SlowAPIASGIMiddleware)

# 2. Request logging
app.add_middleware(RequestLoggingMiddleware)

# 3. Security headers
app.add_middleware(SecurityHeadersMiddleware)

# 4. Request size limit
app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)

# 5. CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time", "Retry-After"],
)


def _locale(request: Request) -> str:
    return resolve_locale(request.headers.get("accept-language"))


def _request_id(request: Request):
    return getattr(request.state, "request_id", None)


# Exception handlers
@app.exception_handler(SOPManagerError)
async def sop_manager_exception_handler(request: Request, exc: SOPManagerError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code.value}: {exc.message}", exc_info=True)
    else:
        logger.info(f"{exc.code.value} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc, locale=_locale(request), request_id=_request_id(request))
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg"),
            "type": err.get("type"),
        }
        for err in exc.errors()
    ]
    error = SOPManagerError(
        "Request validation failed",
        code=ErrorCode.VALIDATION_ERROR,
        details={"errors": errors},
        status_code=422,
    )
    return JSONResponse(
        status_code=422,
        content=error_response(error, locale=_locale(request), request_id=_request_id(request))
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    error = SOPManagerError(
        str(exc) if settings.DEBUG else "An error occurred",
        code=ErrorCode.INTERNAL_ERROR,
    )
    return JSONResponse(
        status_code=500,
        content=error_response(error, locale=_locale(request), request_id=_request_id(request))
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }


# Include API router
app.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "sopmanager.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG
    )
