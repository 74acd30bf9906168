"""
FastAPI middleware.

Provides:
- Request correlation ID injection, logging and timing metrics
- Request timeout protection
- Server-side first-touch origin cookie for storefront page loads
"""
import asyncio
import time
from typing import Callable
from urllib.parse import quote

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response, JSONResponse

from origin_tracker.config import config
from origin_tracker.first_touch import FirstTouchRecorder
from origin_tracker.observability import (
    get_logger,
    generate_correlation_id,
    set_correlation_id,
    clear_log_context,
    get_correlation_id,
    metrics,
)
from web.config import FIRST_TOUCH_ASSET_SUFFIXES, FIRST_TOUCH_EXCLUDED_PREFIXES, STORE_HOST

logger = get_logger(__name__)

# Request timeout settings (seconds)
DEFAULT_REQUEST_TIMEOUT = 30.0
SLOW_ENDPOINT_TIMEOUT = 120.0  # Long report ranges over large meta tables

SLOW_ENDPOINTS = {
    "/api/report",
}

QUIET_PATHS = ("/api/health", "/health")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that:
    1. Assigns correlation ID to each request
    2. Logs request start/end with timing
    3. Records metrics
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Request-ID") or generate_correlation_id()
        set_correlation_id(correlation_id)
        clear_log_context()

        start_time = time.perf_counter()
        method = request.method
        path = request.url.path
        is_quiet = path in QUIET_PATHS

        if not is_quiet:
            logger.info(
                f"Request started: {method} {path}",
                extra={
                    "method": method,
                    "path": path,
                    "client_ip": request.client.host if request.client else "unknown",
                }
            )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {method} {path}",
                extra={
                    "method": method,
                    "path": path,
                    "duration_ms": round(duration_ms, 2),
                    "error": str(e),
                }
            )
            metrics.record_error(type(e).__name__)
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        response.headers["X-Request-ID"] = correlation_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        if not is_quiet:
            level_name = "info" if response.status_code < 400 else "warning"
            getattr(logger, level_name)(
                f"Request completed: {method} {path}",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                }
            )

        endpoint = f"{method} {path}"
        metrics.record_request(endpoint)
        metrics.record_timing(endpoint, duration_ms)
        if response.status_code >= 400:
            metrics.record_error(f"HTTP_{response.status_code}")

        return response


class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    """
    Enforces a per-request timeout.

    Returns 504 Gateway Timeout if the request exceeds it.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path

        if path.startswith("/static") or path in QUIET_PATHS:
            return await call_next(request)

        timeout = SLOW_ENDPOINT_TIMEOUT if path in SLOW_ENDPOINTS else DEFAULT_REQUEST_TIMEOUT

        try:
            return await asyncio.wait_for(call_next(request), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Request timeout: {request.method} {path}",
                extra={"method": request.method, "path": path, "timeout": timeout}
            )
            metrics.record_error("REQUEST_TIMEOUT")
            return JSONResponse(
                status_code=504,
                content={
                    "error": "Request Timeout",
                    "detail": f"Request exceeded {timeout}s timeout",
                    "path": path,
                    "correlation_id": get_correlation_id(),
                }
            )


class FirstTouchMiddleware(BaseHTTPMiddleware):
    """
    Sets the first-touch origin cookie on storefront page loads.

    Only GET requests outside the API and static paths are considered,
    and an existing cookie is never replaced. The value is URL-encoded,
    the same way the browser script stores it.
    """

    def __init__(self, app, recorder: FirstTouchRecorder = None):
        super().__init__(app)
        self.recorder = recorder or FirstTouchRecorder()

    def _is_storefront(self, request: Request) -> bool:
        """Only GET page loads that accept HTML record a first touch."""
        if request.method != "GET":
            return False
        path = request.url.path
        if any(path.startswith(prefix) for prefix in FIRST_TOUCH_EXCLUDED_PREFIXES):
            return False
        if path.lower().endswith(FIRST_TOUCH_ASSET_SUFFIXES):
            return False
        return "text/html" in request.headers.get("accept", "")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self._is_storefront(request):
            return await call_next(request)

        host = request.url.hostname or STORE_HOST
        label = self.recorder.record(
            request.cookies,
            {key: request.query_params.getlist(key) for key in request.query_params.keys()},
            request.headers.get("referer"),
            host,
        )

        response = await call_next(request)

        if label:
            response.set_cookie(
                config.tracker.cookie_name,
                quote(label, safe=""),
                max_age=config.tracker.cookie_max_age_seconds,
                path=config.tracker.cookie_path,
                samesite=config.tracker.cookie_samesite,
            )
            logger.debug(f"First-touch origin recorded: {label}")

        return response
