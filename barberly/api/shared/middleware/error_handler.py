"""
Global Error Handler

Maps domain exceptions and request validation failures to the standard
error envelope. Unexpected exceptions become a 500 without internals.
"""

import logging
import traceback
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ....core.errors import (
    ConcurrencyError,
    ConflictError,
    DomainError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from ..error_codes import NOT_FOUND_CODES, ErrorCode, get_status_code
from ..responses import ErrorBody, ErrorDetail

logger = logging.getLogger(__name__)


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", None) or str(uuid4())


def _error_code(exc: DomainError) -> ErrorCode:
    if isinstance(exc, NotFoundError):
        return NOT_FOUND_CODES.get(exc.resource, ErrorCode.NOT_FOUND)
    if isinstance(exc, ConcurrencyError):
        return ErrorCode.CONCURRENT_MODIFICATION
    if isinstance(exc, ConflictError):
        return ErrorCode.SLOT_UNAVAILABLE
    if isinstance(exc, InvalidStateError):
        return ErrorCode.INVALID_STATE
    if isinstance(exc, ValidationError):
        return ErrorCode.VALIDATION_ERROR
    return ErrorCode.BAD_REQUEST


def error_response(code: ErrorCode, message: str, trace_id: str, details=None) -> JSONResponse:
    body = ErrorBody(code=code.value, message=message, details=details or [], trace_id=trace_id)
    return JSONResponse(
        status_code=get_status_code(code),
        content={"error": body.model_dump(mode="json")}
    )


def register_error_handlers(app: FastAPI):
    """
    Register handlers for:
    - DomainError (NotFound 404, Conflict 409, InvalidState/Validation 400)
    - RequestValidationError (400)
    - Exception (500)
    """

    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError):
        trace_id = _trace_id(request)
        code = _error_code(exc)

        logger.warning(
            f"API Error: {code.value} - {exc.message}",
            extra={"trace_id": trace_id, "error_code": code.value, "path": request.url.path}
        )
        return error_response(code, exc.message, trace_id)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        trace_id = _trace_id(request)

        details = [
            ErrorDetail(
                field=".".join(str(loc) for loc in error["loc"]),
                message=error["msg"],
                code=error["type"],
            )
            for error in exc.errors()
        ]

        logger.warning(
            f"Validation Error: {len(details)} field(s)",
            extra={"trace_id": trace_id, "path": request.url.path}
        )
        return error_response(
            ErrorCode.VALIDATION_ERROR, "Request validation failed", trace_id, details
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        trace_id = _trace_id(request)

        logger.error(
            f"Unhandled Exception: {type(exc).__name__}: {exc}",
            extra={
                "trace_id": trace_id,
                "path": request.url.path,
                "traceback": traceback.format_exc()
            }
        )
        return error_response(ErrorCode.INTERNAL_ERROR, "An internal error occurred", trace_id)
