"""
Custom middleware.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

import logging
import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .utils.metrics import PlannerMetrics

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request/response logging with structured JSON logging."""

    def __init__(self, app: ASGIApp, metrics: PlannerMetrics | None = None):
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Log request and response details and record request metrics."""
        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        method = request.method
        path = request.url.path

        logger.info(
            "HTTP request processed",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "response_time_ms": round(duration * 1000, 2),
            },
        )

        if self.metrics is not None:
            self.metrics.request_counter.labels(method=method, path=path).inc()
            self.metrics.request_latency.labels(method=method, path=path).observe(duration)

        response.headers["X-Process-Time"] = str(duration)
        return response
