"""
Error envelope shared by every endpoint:

    {"success": false, "errors": [{"msg": ..., "code": ..., "details": ...}]}

Domain errors carry their own HTTP status and code (see app.core.exceptions).
Ledger inconsistencies are server faults; their details are logged, never returned.
"""
import logging
from typing import Union

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AppException

logger = logging.getLogger(__name__)


def _envelope(status_code: int, errors: list) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "errors": errors})


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """422 with one entry per offending field."""
    errors = []
    for error in exc.errors():
        # loc is ('body', 'field'), ('header', 'X-Employee-ID'), ...
        loc = error.get("loc") or ()
        errors.append({"field": str(loc[-1]) if loc else "unknown", "msg": error["msg"]})

    logger.warning(f"Validation error on {request.url.path}: {errors}")
    return _envelope(status.HTTP_422_UNPROCESSABLE_ENTITY, errors)


async def app_exception_handler(request: Request, exc: AppException):
    error = {"msg": exc.message, "code": exc.error_code}
    if exc.status_code >= 500:
        logger.error(
            f"{exc.error_code}: {exc.message}",
            extra={"path": request.url.path, "details": exc.details},
        )
    else:
        logger.warning(f"{exc.error_code}: {exc.message}", extra={"path": request.url.path})
        if exc.details:
            error["details"] = exc.details
    return _envelope(exc.status_code, [error])


async def http_exception_handler(request: Request, exc: Union[HTTPException, StarletteHTTPException]):
    msg = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _envelope(exc.status_code, [{"msg": msg}])


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled server error", extra={"path": request.url.path})
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, [{"msg": "An unexpected server error occurred."}])


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
