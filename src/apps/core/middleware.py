"""Custom middleware for the application."""

import logging
import time
import uuid

from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(MiddlewareMixin):
    """Log one line per API request with timing and a request id.

    The request id is echoed back in the ``X-Request-ID`` response header so
    that a client-reported failure can be matched to the server log.
    """

    skip_paths = ("/static/", "/health/live/", "/livez/", "/favicon.ico")

    def process_request(self, request):
        request.start_time = time.monotonic()
        request.request_id = request.META.get("HTTP_X_REQUEST_ID") or uuid.uuid4().hex[:8]
        return None

    def process_response(self, request, response):
        if not hasattr(request, "start_time"):
            return response

        response["X-Request-ID"] = request.request_id

        if request.path.startswith(self.skip_paths):
            return response

        duration_ms = round((time.monotonic() - request.start_time) * 1000, 2)
        log_data = {
            "request_id": request.request_id,
            "method": request.method,
            "path": request.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
            "ip_address": self._get_client_ip(request),
        }
        if request.method == "GET" and request.GET:
            log_data["query_params"] = request.GET.dict()

        # Log at appropriate level based on status code
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            "%s %s -> %s (%.2fms)",
            request.method,
            request.path,
            response.status_code,
            duration_ms,
            extra=log_data,
        )
        return response

    def _get_client_ip(self, request):
        """Extract client IP address from request."""
        x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
        if x_forwarded_for:
            return x_forwarded_for.split(",")[0].strip()
        return request.META.get("REMOTE_ADDR", "unknown")
