"""Exception-to-envelope translation shared by both services.

Routes raise AppError for every non-2xx outcome they decide on themselves.
Everything else is caught here: routing misses, request validation, and
anything unexpected, which is logged with its traceback and answered with
a bare 500 so no internals reach the client.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.envelope import envelope
from app.core.config import SETTINGS

logger = logging.getLogger(__name__)


class AppError(Exception):
    """An HTTP error with an envelope body."""

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        data: Any = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.data = data
        self.headers = headers


def error_response(
    status_code: int,
    message: str,
    *,
    data: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=envelope(message, data, success=False),
        headers=headers,
    )


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        msg = str(err.get("msg", "invalid value")).removeprefix("Value error, ")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "Validation error: " + ", ".join(parts)


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed status=%d worker_id=%s: %s",
            request.method,
            request.url.path,
            exc.status_code,
            SETTINGS.worker_id,
            exc.message,
        )
    return error_response(
        exc.status_code, exc.message, data=exc.data, headers=exc.headers
    )


async def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 404:
        message = f"Route {request.url.path} not found"
    else:
        message = str(exc.detail)
    return error_response(
        exc.status_code,
        message,
        headers=getattr(exc, "headers", None),
    )


async def _validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = _validation_message(exc)
    logger.info("Rejected %s %s: %s", request.method, request.url.path, message)
    return error_response(400, message)


async def _unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s worker_id=%s",
        request.method,
        request.url.path,
        SETTINGS.worker_id,
        exc_info=exc,
    )
    return error_response(500, "Internal Server Error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_handler)
