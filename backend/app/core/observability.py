"""
Observability helpers.

Logging setup plus a middleware that adds correlation IDs and structured
logging context to requests.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from backend.app.core.config import settings

# Configure structured logger
logger = logging.getLogger("ledger")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = None) -> None:
    """Install a stream handler on the root logger once."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel((level or settings.log_level).upper())


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Per-request correlation ID, timing and one structured access log line.

    The X-Actor header is carried into the log so ledger changes can be
    traced back to the request that made them.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        started = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}"

        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "actor": request.headers.get("X-Actor"),
            "ip": request.client.host if request.client else "unknown"
        }

        if response.status_code >= 500:
            logger.error("%s %s failed", request.method, request.url.path, extra=log_data)
        elif response.status_code >= 400:
            logger.warning("%s %s rejected", request.method, request.url.path, extra=log_data)
        else:
            logger.info("%s %s", request.method, request.url.path, extra=log_data)

        return response
