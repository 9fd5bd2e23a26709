"""
Health check endpoints.

Used for monitoring and load balancer health checks.
"""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
import platform

from core.infrastructure.database import ping_database


router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns system health status.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "storefront-checkout",
        "version": "1.0.0",
        "python_version": platform.python_version(),
    }


@router.get("/health/ready")
async def readiness_check(request: Request):
    """
    Readiness check endpoint.

    Ready when the database answers. A missing payment gateway is
    reported but does not make the service unready; order reads still work.
    """
    database_ok = await ping_database()
    gateway_ok = getattr(request.app.state, "payment_gateway", None) is not None

    return JSONResponse(
        status_code=200 if database_ok else 503,
        content={
            "status": "ready" if database_ok else "not_ready",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": {
                "api": "ok",
                "database": "ok" if database_ok else "unavailable",
                "payment_gateway": "ok" if gateway_ok else "not_configured",
            },
        },
    )
