"""
Global exception handlers.

Every failed request is answered with the same envelope:
{
    "success": false,
    "message": "...",
    "errorCode": "...",
    "statusCode": 400,
    "details": {...}   # only when present
}
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from ecommerce.core.exceptions import (
    AppError,
    FORBIDDEN,
    INTERNAL_ERROR,
    UNAUTHORIZED,
    VALIDATION_ERROR,
)

logger = logging.getLogger(__name__)


_STATUS_TO_CODE = {
    status.HTTP_400_BAD_REQUEST: VALIDATION_ERROR,
    status.HTTP_401_UNAUTHORIZED: UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: FORBIDDEN,
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


def _error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {
        "success": False,
        "message": message,
        "errorCode": error_code,
        "statusCode": status_code,
    }
    if details:
        body["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render typed application errors."""
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc.message
        )
    return _error_response(
        exc.status_code, exc.error_code, exc.message, exc.details, exc.headers
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render plain HTTPExceptions raised by FastAPI or its security helpers."""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    error_code = _STATUS_TO_CODE.get(exc.status_code, "HTTP_ERROR")
    return _error_response(
        exc.status_code, error_code, message, headers=getattr(exc, "headers", None)
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request body/query validation failures as 400 VALIDATION_ERROR."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        VALIDATION_ERROR,
        "Request validation failed",
        {"errors": errors},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort handler: log the failure and hide internals from the client."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        INTERNAL_ERROR,
        "Internal server error",
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, global_exception_handler)
