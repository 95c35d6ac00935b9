"""
Health check endpoints for monitoring and load balancer integration.

Provides:
- Basic liveness check
- Database connectivity
- Cache connectivity
"""

import logging
import time
from typing import Any

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from django.views.decorators.cache import never_cache
from django.views.decorators.http import require_GET

logger = logging.getLogger(__name__)

DB_LATENCY_WARN_MS = 100


@require_GET
@never_cache
def health_check(request: HttpRequest) -> JsonResponse:
    """
    Full health check: database and cache.

    Returns:
        200 OK if every check passes (a degraded cache still counts)
        503 Service Unavailable otherwise

    Response format:
        {
            "status": "healthy" | "unhealthy",
            "timestamp": "2025-01-02T10:30:00Z",
            "checks": {
                "database": {"status": "ok", "latency_ms": 5.2},
                "cache": {"status": "ok"}
            },
            "version": "1.0.0"
        }
    """
    checks = {
        "database": check_database(),
        "cache": check_cache(),
    }
    all_healthy = checks["database"]["status"] == "ok" and checks["cache"]["status"] in ("ok", "degraded")

    response_data = {
        "status": "healthy" if all_healthy else "unhealthy",
        "timestamp": timezone.now().isoformat(),
        "checks": checks,
        "version": getattr(settings, "VERSION", "1.0.0"),
    }
    return JsonResponse(response_data, status=200 if all_healthy else 503)


@require_GET
@never_cache
def liveness_check(request: HttpRequest) -> JsonResponse:
    """Lightweight check that only verifies the process is serving requests."""
    return JsonResponse({
        "status": "alive",
        "timestamp": timezone.now().isoformat(),
    })


@require_GET
@never_cache
def readiness_check(request: HttpRequest) -> JsonResponse:
    """Ready to receive traffic once the database answers."""
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except DatabaseError as e:
        logger.warning("Readiness check failed: %s", e)
        return JsonResponse({
            "status": "not_ready",
            "timestamp": timezone.now().isoformat(),
            "reason": "database_unavailable",
        }, status=503)

    return JsonResponse({
        "status": "ready",
        "timestamp": timezone.now().isoformat(),
    })


def check_database() -> dict[str, Any]:
    """Run ``SELECT 1`` and report the latency."""
    start_time = time.monotonic()
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError as e:
        logger.error("Database health check failed: %s", e)
        return {"status": "error", "error": str(e)}

    latency_ms = (time.monotonic() - start_time) * 1000
    if latency_ms > DB_LATENCY_WARN_MS:
        logger.warning("Database latency is high: %.2fms", latency_ms)
    return {"status": "ok", "latency_ms": round(latency_ms, 2)}


def check_cache() -> dict[str, Any]:
    """Set, read back and delete a key."""
    test_key = "health_check_test"
    try:
        cache.set(test_key, "ok", timeout=10)
        if cache.get(test_key) != "ok":
            return {"status": "error", "error": "Cache set/get mismatch"}
        cache.delete(test_key)
    except Exception as e:
        # Cache is optional, so log as warning not error
        logger.warning("Cache health check failed: %s", e)
        return {
            "status": "degraded",
            "error": str(e),
            "note": "Cache is optional, application continues without it",
        }
    return {"status": "ok"}
