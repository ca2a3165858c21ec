"""
Health check utilities for application monitoring.

Built-in checks cover database connectivity and disk space on the database
volume. Apps contribute their own checks with ``health_checker.register``
from ``AppConfig.ready`` (the fuel prices app registers ingestion freshness).
"""

import logging
import os
from collections.abc import Callable
from typing import Any

import psutil
from django.conf import settings
from django.db import connection
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.cache import never_cache
from django.views.decorators.http import require_http_methods

logger = logging.getLogger(__name__)

HealthCheck = Callable[[], dict[str, Any]]


class HealthCheckStatus:
    """Health check status constants."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


class HealthChecker:
    """Runs every registered check and folds the results into one status."""

    def __init__(self) -> None:
        self.checks: dict[str, HealthCheck] = {
            "database": self._check_database,
            "disk_space": self._check_disk_space,
        }

    def register(self, name: str, check: HealthCheck) -> None:
        self.checks[name] = check

    def run_all_checks(self) -> dict[str, Any]:
        """Run all health checks and return status."""
        results = {}
        overall_status = HealthCheckStatus.HEALTHY

        for check_name, check_func in self.checks.items():
            try:
                check_result = check_func()
            except Exception as e:
                logger.error("Health check '%s' failed: %s", check_name, e)
                check_result = {
                    "status": HealthCheckStatus.UNHEALTHY,
                    "message": f"Check failed: {e}",
                    "timestamp": timezone.now().isoformat(),
                }
            results[check_name] = check_result

            if check_result["status"] == HealthCheckStatus.UNHEALTHY:
                overall_status = HealthCheckStatus.UNHEALTHY
            elif (
                check_result["status"] == HealthCheckStatus.DEGRADED
                and overall_status == HealthCheckStatus.HEALTHY
            ):
                overall_status = HealthCheckStatus.DEGRADED

        return {
            "status": overall_status,
            "timestamp": timezone.now().isoformat(),
            "version": getattr(settings, "VERSION", "1.0.0"),
            "environment": getattr(settings, "ENVIRONMENT", "unknown"),
            "checks": results,
        }

    def _check_database(self) -> dict[str, Any]:
        """Check database connectivity and response time."""
        try:
            start_time = timezone.now()
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()

            response_time = (timezone.now() - start_time).total_seconds() * 1000

            if response_time > 1000:  # 1 second
                status = HealthCheckStatus.DEGRADED
                message = f"Slow database response: {response_time:.2f}ms"
            else:
                status = HealthCheckStatus.HEALTHY
                message = f"Database responsive: {response_time:.2f}ms"

            return {
                "status": status,
                "message": message,
                "response_time_ms": round(response_time, 2),
                "timestamp": timezone.now().isoformat(),
            }

        except Exception as e:
            return {
                "status": HealthCheckStatus.UNHEALTHY,
                "message": f"Database connection failed: {e}",
                "timestamp": timezone.now().isoformat(),
            }

    def _check_disk_space(self) -> dict[str, Any]:
        """Check free space on the volume holding the SQLite database."""
        try:
            db_dir = os.path.dirname(str(settings.DATABASES["default"]["NAME"])) or "/"
            if not os.path.isdir(db_dir):
                db_dir = "/"
            disk_usage = psutil.disk_usage(db_dir)
            used_percent = (disk_usage.used / disk_usage.total) * 100

            max_usage = getattr(settings, "HEALTH_CHECK", {}).get("DISK_USAGE_MAX", 90)

            if used_percent >= max_usage:
                status = HealthCheckStatus.UNHEALTHY
                message = f"Disk usage critical: {used_percent:.1f}%"
            elif used_percent >= max_usage - 10:
                status = HealthCheckStatus.DEGRADED
                message = f"Disk usage high: {used_percent:.1f}%"
            else:
                status = HealthCheckStatus.HEALTHY
                message = f"Disk usage normal: {used_percent:.1f}%"

            return {
                "status": status,
                "message": message,
                "disk_usage_percent": round(used_percent, 1),
                "disk_free_gb": round(disk_usage.free / (1024**3), 2),
                "timestamp": timezone.now().isoformat(),
            }

        except Exception as e:
            return {
                "status": HealthCheckStatus.UNHEALTHY,
                "message": f"Disk space check failed: {e}",
                "timestamp": timezone.now().isoformat(),
            }


# Global health checker instance
health_checker = HealthChecker()


@never_cache
@require_http_methods(["GET", "HEAD"])
def health_check_view(request: Any) -> JsonResponse:
    """Health check endpoint for monitoring systems."""
    health_status = health_checker.run_all_checks()

    # Degraded still serves traffic
    if health_status["status"] == HealthCheckStatus.UNHEALTHY:
        status_code = 503
    else:
        status_code = 200

    return JsonResponse(health_status, status=status_code)


@never_cache
@require_http_methods(["GET"])
def readiness_check_view(request: Any) -> JsonResponse:
    """Readiness check: can the app answer search queries?"""
    try:
        db_check = health_checker._check_database()

        if db_check["status"] == HealthCheckStatus.UNHEALTHY:
            return JsonResponse(
                {"status": "not_ready", "message": "Database not available"}, status=503
            )

        return JsonResponse(
            {"status": "ready", "timestamp": timezone.now().isoformat()}, status=200
        )

    except Exception as e:
        return JsonResponse({"status": "not_ready", "error": str(e)}, status=503)


@never_cache
@require_http_methods(["GET"])
def liveness_check_view(request: Any) -> JsonResponse:
    """Liveness check: is the process running?"""
    return JsonResponse(
        {
            "status": "alive",
            "timestamp": timezone.now().isoformat(),
            "version": getattr(settings, "VERSION", "1.0.0"),
        },
        status=200,
    )
