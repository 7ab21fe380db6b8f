import time
from typing import Any, Dict

import structlog
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

from modules.core.models import OutboxEvent

logger = structlog.get_logger()


def _timed(check) -> Dict[str, Any]:
    start = time.monotonic()
    extra = check() or {}
    return {
        "status": "up",
        "response_time_ms": round((time.monotonic() - start) * 1000, 2),
        **extra,
    }


def _check_database() -> None:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _check_cache() -> None:
    cache.set("_health_check", "ok", 10)
    if cache.get("_health_check") != "ok":
        raise ConnectionError("Cache read failed")


def _check_outbox() -> Dict[str, Any]:
    backlog = OutboxEvent.objects.pending().count()
    return {"pending_events": backlog}


def health_check(request: HttpRequest) -> JsonResponse:
    """Liveness of the database, the cache and the outbox backlog.

    A down cache degrades the report but only the database decides the
    HTTP status: scans and transitions never touch the cache.
    """
    services: Dict[str, Dict[str, Any]] = {}
    overall_healthy = True

    for name, check, critical in (
        ("database", _check_database, True),
        ("cache", _check_cache, False),
        ("outbox", _check_outbox, False),
    ):
        try:
            services[name] = _timed(check)
        except Exception:
            services[name] = {"status": "down"}
            logger.error("health_check_failure", service=name)
            if critical:
                overall_healthy = False

    status_code = 200 if overall_healthy else 503

    logger.info(
        "health_check_completed", status="healthy" if overall_healthy else "unhealthy"
    )

    return JsonResponse(
        {
            "status": "healthy" if overall_healthy else "unhealthy",
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=status_code,
    )
