from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings

logger = logging.getLogger(__name__)


class FixoraError(Exception):
    """Base for errors rendered as ``{"error", "message"}`` JSON bodies."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal server error"

    def __init__(self, message: str, *, error: str | None = None, code: str | None = None):
        super().__init__(message)
        self.message = message
        if error is not None:
            self.error = error
        self.code = code

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message}


class InputValidationError(FixoraError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Validation error"


class UnsupportedMediaError(FixoraError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Invalid file"


class QuotaExceededError(FixoraError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error = "Usage limit exceeded"

    def __init__(self, message: str, *, usage: dict[str, Any], upgrade: dict[str, Any]):
        super().__init__(message)
        self.usage = usage
        self.upgrade = upgrade

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["usage"] = self.usage
        payload["upgrade"] = self.upgrade
        return payload


class UpstreamServiceError(FixoraError):
    error = "Service unavailable"


class ConfigurationError(UpstreamServiceError):
    error = "Configuration error"


async def fixora_error_handler(request: Request, exc: FixoraError) -> JSONResponse:
    log = logger.warning if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logger.info
    log(
        'request_failed path=%s status=%s error="%s" code=%s',
        request.url.path,
        exc.status_code,
        exc.error,
        exc.code or "-",
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    _ = request
    problems = []
    for item in exc.errors():
        location = ".".join(str(part) for part in item.get("loc", ()) if part != "body")
        problems.append(f"{location}: {item.get('msg')}" if location else str(item.get("msg")))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "message": "; ".join(problems) or "Malformed request body."},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    _ = request
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        error = "Route not found"
    else:
        error = HTTPStatus(exc.status_code).phrase
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": error, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error path=%s", request.url.path, exc_info=exc)
    message = str(exc) if settings.expose_error_details else "Something went wrong"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "message": message},
    )
