"""
ASGI middleware for tracking HTTP request metrics.
Records request count, duration, and errors.
"""
import re
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from filegate.utils.metrics import http_requests_total, http_request_duration_seconds, errors_total

_FILE_PATH = re.compile(r'^/files/.+$')


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next):
        """Process request and record metrics."""
        start_time = time.time()

        # Skip metrics endpoint to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        normalized_path = self._normalize_path(request.url.path)

        try:
            response = await call_next(request)
        except Exception:
            errors_total.labels(error_type="exception").inc()
            raise

        status_code = response.status_code
        http_requests_total.labels(
            method=method,
            path=normalized_path,
            status=status_code
        ).inc()

        # Time to first byte for streamed downloads
        http_request_duration_seconds.labels(
            method=method,
            path=normalized_path
        ).observe(time.time() - start_time)

        if status_code >= 400:
            errors_total.labels(error_type=f"{status_code // 100}xx").inc()

        return response

    def _normalize_path(self, path: str) -> str:
        """
        Normalize path to reduce cardinality.
        Object keys are user-supplied, so every /files/<key> collapses to one label.
        """
        if _FILE_PATH.match(path):
            return "/files/{key}"
        if path in ("/", "/upload", "/files", "/health"):
            return path
        return "other"
