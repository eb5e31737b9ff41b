# backend/portfolio_tracker/middleware/correlation.py
"""
Correlation ID middleware for request tracing.

For each request the middleware takes the ID from X-Correlation-ID (or
X-Request-ID), generates a UUID when neither header is present, stores it
in the logging context and echoes it in the X-Correlation-ID response
header. Every log line of the request then carries the same ID, including
lines written from price-fetch worker threads that copy the context.

Usage:
    app.add_middleware(CorrelationIdMiddleware)
"""

import logging
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from portfolio_tracker.utils.context import set_correlation_id, clear_correlation_id

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Longer client-supplied IDs are replaced to keep log lines bounded
MAX_CORRELATION_ID_LENGTH = 128


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach a correlation ID to every request, its logs and its response."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        correlation_id = self._get_correlation_id(request)
        set_correlation_id(correlation_id)

        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            clear_correlation_id()

    @staticmethod
    def _get_correlation_id(request: Request) -> str:
        supplied = (
            request.headers.get(CORRELATION_ID_HEADER)
            or request.headers.get(REQUEST_ID_HEADER)
        )
        if supplied and len(supplied) <= MAX_CORRELATION_ID_LENGTH:
            return supplied
        return str(uuid.uuid4())
