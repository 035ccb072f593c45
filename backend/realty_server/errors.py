"""API error envelope and exception handlers.

Every error raised while handling an ``/api`` request is answered with the
same JSON shape::

    {"success": false, "message": ..., "statusCode": ..., "timestamp": ...}

plus a ``stack`` field when running in development.
"""

import logging
import traceback
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exception_handlers import http_exception_handler, request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from realty_server.utils import is_api_path, utc_now_iso

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """Raised by route modules to answer with a specific status and message."""

    def __init__(self, status_code: int, message: str):
        super().__init__(status_code=status_code, detail=message)


def status_code_for(exc: BaseException) -> int:
    """Status carried by an exception (``status_code`` or ``status``), else 500."""
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and 400 <= value <= 599:
            return value
    return 500


def error_payload(
    status_code: int,
    message: str,
    exc: Optional[BaseException] = None,
    include_stack: bool = False,
) -> dict:
    payload: dict[str, Any] = {
        "success": False,
        "message": message or "Internal server error",
        "statusCode": status_code,
    }
    if include_stack and exc is not None:
        payload["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    payload["timestamp"] = utc_now_iso()
    return payload


def error_response(
    status_code: int,
    message: str,
    exc: Optional[BaseException] = None,
    include_stack: bool = False,
    headers: Optional[dict] = None,
) -> JSONResponse:
    return JSONResponse(
        error_payload(status_code, message, exc, include_stack),
        status_code=status_code,
        headers=headers,
    )


def _include_stack(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings and settings.is_development)


async def api_http_exception_handler(request: Request, exc: StarletteHTTPException):
    if not is_api_path(request.scope["path"]):
        return await http_exception_handler(request, exc)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return error_response(
        exc.status_code,
        message,
        exc,
        include_stack=_include_stack(request),
        headers=getattr(exc, "headers", None),
    )


async def api_validation_exception_handler(request: Request, exc: RequestValidationError):
    if not is_api_path(request.scope["path"]):
        return await request_validation_exception_handler(request, exc)
    return error_response(
        422,
        "Invalid request payload",
        exc,
        include_stack=_include_stack(request),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, api_http_exception_handler)
    app.add_exception_handler(RequestValidationError, api_validation_exception_handler)
