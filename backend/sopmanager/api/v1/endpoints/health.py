"""
Health Check Endpoints

- /health/live  - Basic liveness (app is running)
- /health/ready - Readiness check (database reachable, tables present)
- /health/deep  - Detailed diagnostics including Redis and configuration
"""

from fastapi import APIRouter, HTTPException, status
from datetime import datetime
from typing import Dict, Any
import asyncio
import time

from sqlalchemy import text

from sopmanager.core.config import settings
from sopmanager.core.database import get_session_local
from sopmanager.core.logging_config import logger
from sopmanager.services.cache_service import cache_service


router = APIRouter(prefix="/health", tags=["Health Checks"])

APP_VERSION = "1.0.0"


async def check_database() -> Dict[str, Any]:
    """Check database connectivity and that the staff table exists"""
    start = time.time()
    try:
        session_factory = get_session_local()
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
            try:
                await session.execute(text("SELECT COUNT(*) FROM auth_users"))
                tables_ok = True
            except Exception:
                tables_ok = False

        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "connection": "ok",
            "tables_ready": tables_ok,
        }
    except Exception as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "connection": "failed",
            "tables_ready": False,
            "error": str(e),
        }


async def check_redis() -> Dict[str, Any]:
    """Redis backs the bundle cache; a failure only degrades the service"""
    if not settings.CACHE_ENABLED:
        return {"status": "healthy", "enabled": False, "message": "Cache disabled"}

    stats = await cache_service.get_cache_stats()
    if "error" in stats:
        return {"status": "degraded", "enabled": True, "error": stats["error"]}
    return {"status": "healthy", **stats}


def check_critical_env_vars() -> Dict[str, Any]:
    """Verify critical secrets are set and not placeholders"""
    missing = []
    for name, value in {
        "DATABASE_URL": settings.DATABASE_URL,
        "SECRET_KEY": settings.SECRET_KEY,
        "JWT_SECRET_KEY": settings.JWT_SECRET_KEY,
    }.items():
        if not value or value in ["CHANGE_ME", "your-secret-key"]:
            missing.append(name)

    if missing:
        return {
            "status": "unhealthy",
            "missing_critical": missing,
            "message": f"Missing critical env vars: {', '.join(missing)}",
        }
    return {"status": "healthy", "missing_critical": []}


@router.get("/live")
async def liveness_check():
    """Liveness probe. Returns 200 while the process is alive."""
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
        "app": settings.APP_NAME,
        "version": APP_VERSION,
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness probe for the load balancer.

    Returns 503 unless the database answers and the schema exists.
    """
    db_check, redis_check = await asyncio.gather(check_database(), check_redis())
    is_ready = db_check.get("status") == "healthy" and db_check.get("tables_ready", False)

    response = {
        "status": "ready" if is_ready else "not_ready",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {
            "database": db_check,
            "redis": redis_check,
            "environment": check_critical_env_vars(),
        },
    }

    if not is_ready:
        logger.warning(f"[HealthCheck] Readiness check failed: {response}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=response)

    return response


@router.get("/deep")
async def deep_health_check():
    """Full diagnostics for monitoring dashboards"""
    start_time = time.time()
    db_check, redis_check = await asyncio.gather(check_database(), check_redis())

    checks = {
        "database": db_check,
        "redis": redis_check,
        "environment": check_critical_env_vars(),
    }

    statuses = [c.get("status", "unknown") for c in checks.values()]
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "degraded" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    response = {
        "status": overall,
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.ENVIRONMENT,
        "version": APP_VERSION,
        "total_check_time_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }

    if overall == "unhealthy":
        logger.error(f"[HealthCheck] Deep check unhealthy: {response}")

    return response
