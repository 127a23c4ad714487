# taskflow/shared/middleware/error_handler_middleware.py

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from taskflow.domain.exceptions import DomainException

logger = logging.getLogger(__name__)

UNAUTHORIZED_HEADERS = {"WWW-Authenticate": "Bearer"}


def _error_response(status_code: int, error: str, code: str, details=None, headers=None) -> JSONResponse:
    content = {"success": False, "error": error, "code": code}
    if details:
        content["details"] = details
    if status_code == 401:
        headers = {**UNAUTHORIZED_HEADERS, **(headers or {})}
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    # Details are logged, not returned: they name the failed sub-check
    logger.warning(
        f"[{exc.internal_code}] {request.method} {request.url.path}: {exc.message} details={exc.details}"
    )
    return _error_response(exc.status_code, exc.message, exc.internal_code, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"RequestValidationError on {request.url.path}")
    errors = [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return _error_response(422, "Validation error.", "VALIDATION_ERROR", errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.warning(f"HTTPException {exc.status_code} on {request.url.path}: {exc.detail}")
    return _error_response(exc.status_code, str(exc.detail), "HTTP_EXCEPTION")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last line of defence: anything not handled above becomes a generic 500."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)

        except DomainException as e:
            return await domain_exception_handler(request, e)

        except Exception:
            logger.exception(f"Unexpected error on {request.url.path}")
            return _error_response(500, "Internal server error.", "INTERNAL_SERVER_ERROR")
