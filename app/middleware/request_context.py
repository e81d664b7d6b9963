"""Request context middleware: a unique ID and a service name per request.

When two services and several replicas write to one log stream, a line is
only useful if it says which request and which service produced it.  The
middleware puts both in context variables; RequestContextFilter copies them
onto every LogRecord emitted while the request is being handled.

The request ID is echoed back as X-Request-ID so a client can quote it.

ContextVars, not thread-locals: concurrent requests share one event-loop
thread, and each asyncio task sees its own copy of the variable.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
service_var: ContextVar[str] = ContextVar("service", default="-")


class RequestContextFilter(logging.Filter):
    """Adds request_id and service from the context variables to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        record.service = service_var.get("-")  # type: ignore[attr-defined]
        return True


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID, times the request, and logs completion.

    1. Reads X-Request-ID (if the client sent one) or generates a UUID
    2. Stores it and the service name in ContextVars
    3. Logs one summary line (method, path, status, duration)
    4. Sets X-Request-ID on the response
    """

    def __init__(self, app: ASGIApp, *, service: str = "-") -> None:
        super().__init__(app)
        self.service = service

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)
        service_var.set(self.service)

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
