"""HTTP middleware: request tracing and response headers."""

import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from shortlet.config import settings

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 1.0
MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Stamp every request with an id and log how it went.

    An incoming ``X-Request-ID`` (gateways send one with callbacks) is kept so
    a payout can be traced across both systems. Writes are logged at INFO,
    reads at DEBUG, anything slower than a second at WARNING.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - started
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}s"

        line = f"{request.method} {request.url.path} -> {response.status_code} in {duration:.3f}s [{request_id}]"
        if duration > SLOW_REQUEST_SECONDS:
            logger.warning(f"SLOW REQUEST: {line}")
        elif request.method in MUTATING_METHODS:
            logger.info(line)
        else:
            logger.debug(line)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Hardening headers. API responses carry balances and bank details, so none are cached."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        if request.url.path.startswith(settings.api_prefix):
            response.headers["Cache-Control"] = "no-store"
        if not settings.debug:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response
