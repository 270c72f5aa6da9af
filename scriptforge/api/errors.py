"""Translate exceptions into the service's error envelope.

Every error response carries ``statusCode``, ``timestamp``, ``path`` and
``message``. Outside production the body also names the error kind, the
pipeline stage that failed, the raw exception text and its traceback. In
production a 500 always says ``Internal server error``.
"""

from __future__ import annotations

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from scriptforge.errors import ErrorKind, ScriptForgeError
from scriptforge.models.api import ErrorResponse

logger = logging.getLogger(__name__)

INTERNAL_MESSAGE = "Internal server error"

HTTP_STATUS_KINDS = {
    status.HTTP_400_BAD_REQUEST: ErrorKind.VALIDATION,
    status.HTTP_404_NOT_FOUND: ErrorKind.NOT_FOUND,
    status.HTTP_429_TOO_MANY_REQUESTS: ErrorKind.RATE_LIMITED,
}


def _error_response(
    request: Request,
    status_code: int,
    message: str,
    kind: ErrorKind,
    production: bool,
    exc: Optional[BaseException] = None,
    stage: Optional[str] = None,
) -> JSONResponse:
    if production and status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        message = INTERNAL_MESSAGE

    body: Dict[str, Any] = ErrorResponse(
        status_code=status_code,
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=request.url.path,
        message=message,
    ).model_dump(by_alias=True)

    if not production:
        body["error"] = kind.value
        if stage:
            body["stage"] = stage
        if exc is not None:
            body["detail"] = str(exc)
            body["stack"] = "".join(traceback.format_exception(exc)).strip()

    return JSONResponse(status_code=status_code, content=body)


def _is_production(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings and settings.is_production)


async def scriptforge_error_handler(request: Request, exc: ScriptForgeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.kind.value, request.method, request.url.path, exc)
    else:
        logger.info("%s on %s %s: %s", exc.kind.value, request.method, request.url.path, exc)
    return _error_response(
        request,
        exc.status_code,
        exc.client_message,
        exc.kind,
        _is_production(request),
        exc=exc,
        stage=exc.stage,
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kind = HTTP_STATUS_KINDS.get(exc.status_code, ErrorKind.INTERNAL)
    message = exc.detail if isinstance(exc.detail, str) else "An HTTP error occurred"
    return _error_response(request, exc.status_code, message, kind, _is_production(request))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Request validation failed on %s: %s", request.url.path, exc.errors())
    return _error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "Invalid request data provided",
        ErrorKind.VALIDATION,
        _is_production(request),
        exc=exc,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        str(exc) or INTERNAL_MESSAGE,
        ErrorKind.INTERNAL,
        _is_production(request),
        exc=exc,
    )


class ExceptionNormalizationMiddleware(BaseHTTPMiddleware):
    """Last safety net: any exception that escapes a route becomes an envelope."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:  # noqa: BLE001
            return await unhandled_error_handler(request, exc)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ScriptForgeError, scriptforge_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_middleware(ExceptionNormalizationMiddleware)
