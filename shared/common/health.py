"""
Health Check Module.

Liveness and readiness endpoints for the booking service.
"""
import logging
import time
from typing import Dict, Any
from datetime import datetime, timezone

from django.db import connection, DatabaseError
from django.core.cache import cache
from django.conf import settings
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

logger = logging.getLogger(__name__)


# =============================================================================
# HEALTH CHECK STATUS
# =============================================================================

class HealthStatus:
    """Health check status constants."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# HEALTH CHECK FUNCTIONS
# =============================================================================

def check_database() -> Dict[str, Any]:
    """Check database connectivity."""
    start = time.time()
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        latency = (time.time() - start) * 1000
        return {
            "name": "database",
            "status": HealthStatus.HEALTHY,
            "latency_ms": round(latency, 2),
        }
    except DatabaseError as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "name": "database",
            "status": HealthStatus.UNHEALTHY,
            "error": str(e),
        }


def check_cache() -> Dict[str, Any]:
    """Check cache connectivity."""
    start = time.time()
    try:
        cache_key = f"health_check_{time.time()}"
        cache.set(cache_key, "OK", 10)
        value = cache.get(cache_key)
        cache.delete(cache_key)
    except Exception as e:
        logger.error(f"Cache health check failed: {e}")
        return {
            "name": "cache",
            "status": HealthStatus.UNHEALTHY,
            "error": str(e),
        }

    if value != "OK":
        return {
            "name": "cache",
            "status": HealthStatus.UNHEALTHY,
            "error": "Cache read/write mismatch",
        }

    latency = (time.time() - start) * 1000
    return {
        "name": "cache",
        "status": HealthStatus.HEALTHY,
        "latency_ms": round(latency, 2),
    }


# =============================================================================
# HEALTH CHECK VIEWS
# =============================================================================

@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def health_check(request):
    """
    Liveness endpoint.

    Returns 200 while the process is serving requests.
    """
    return Response({
        "status": HealthStatus.HEALTHY,
        "service": getattr(settings, 'SERVICE_NAME', 'unknown'),
        "timestamp": _now(),
    })


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def readiness_check(request):
    """
    Readiness endpoint.

    Returns 503 when the database or the cache is unreachable.
    """
    checks = [
        check_database(),
        check_cache(),
    ]

    healthy = all(c["status"] == HealthStatus.HEALTHY for c in checks)

    return Response(
        {
            "status": HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
            "checks": checks,
            "timestamp": _now(),
        },
        status=200 if healthy else 503
    )


# =============================================================================
# URL PATTERNS
# =============================================================================

def get_health_urlpatterns():
    """
    Returns URL patterns for health check endpoints.

    Usage in urls.py:
        from shared.common.health import get_health_urlpatterns
        urlpatterns += get_health_urlpatterns()
    """
    from django.urls import path

    return [
        path('health/', health_check, name='health'),
        path('health/ready/', readiness_check, name='readiness'),
    ]
