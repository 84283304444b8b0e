"""
Rate Limiting for the SOP Manager API
=====================================
slowapi limiter backed by Redis (memory:// in tests and single-node setups).

- Authenticated requests are keyed by staff user ID
- Anonymous requests are keyed by client IP
- /auth/login: AUTH_RATE_LIMIT_MAX_ATTEMPTS per AUTH_RATE_LIMIT_WINDOW_MINUTES

This is a request-rate guard only. Per-account PIN lockout lives on the
user row (see services/auth_service.py).
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from sopmanager.core.config import settings
from sopmanager.core.errors import resolve_locale
from sopmanager.core.exceptions import RateLimitError, error_response
from sopmanager.core.logging_config import logger


def get_user_identifier(request: Request) -> str:
    """
    Rate limit key.

    Priority:
    1. Authenticated staff user ID (set by the auth dependency)
    2. Client IP address
    """
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.rate_limit_storage,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


def _retry_after_seconds(exc: RateLimitExceeded) -> int:
    limit = getattr(exc, "limit", None)
    if limit is not None and getattr(limit, "limit", None) is not None:
        return int(limit.limit.get_expiry())
    return 60


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """429 in the standard error envelope, with Retry-After"""
    retry_after = _retry_after_seconds(exc)

    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)}: {exc.detail}",
        extra={"event_type": "rate_limit", "http_path": request.url.path},
    )

    error = RateLimitError(retry_after_seconds=retry_after)
    error.message = f"Rate limit exceeded: {exc.detail}"
    return JSONResponse(
        status_code=error.status_code,
        content=error_response(
            error,
            locale=resolve_locale(request.headers.get("accept-language")),
            request_id=getattr(request.state, "request_id", None),
        ),
        headers={
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(exc.detail),
        }
    )


def auth_rate_limit():
    """Rate limit for PIN login"""
    return limiter.limit(settings.auth_rate_limit, key_func=get_remote_address)


def strict_rate_limit():
    """Very strict rate limit for sensitive operations (3/min)"""
    return limiter.limit("3/minute", key_func=get_user_identifier)
