"""
Error types and the handlers that turn them into JSON.

Every error response has the same shape:
    {"error": {"code", "message", "request_id"[, "retryable"]}, "detail": message}
and echoes the request id in the x-request-id header.
"""

import logging
import builtins
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from orangerides.core.logging import LOGGER_NAME, get_request_id

logger = logging.getLogger(LOGGER_NAME)


class AppError(Exception):
    code = "app_error"
    status_code = 500
    retryable = False

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class PermissionError(AppError, builtins.PermissionError):
    code = "forbidden"
    status_code = 403


class ConflictError(AppError):
    code = "conflict"
    status_code = 409


class QuotaExceededError(AppError):
    """Raised when an owner's plan does not admit another listing."""
    code = "quota_exceeded"
    status_code = 403


class ConfigurationError(AppError):
    """A required secret or setting is missing."""
    code = "configuration_error"
    status_code = 500


class SignatureMismatchError(AppError):
    code = "signature_mismatch"
    status_code = 401


class AmountMismatchError(AppError):
    """Provider accepted a payment whose amount disagrees with the plan price."""
    code = "amount_mismatch"
    status_code = 402


class OwnerNotFoundError(NotFoundError):
    code = "owner_not_found"
    status_code = 404


class ProviderUnavailableError(AppError):
    """Network failure or timeout talking to the payment provider. Retryable."""
    code = "provider_unavailable"
    status_code = 503
    retryable = True


class PaymentProviderError(AppError):
    """Provider answered but refused the request."""
    code = "payment_provider_error"
    status_code = 502


def _request_id_for(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id() or uuid4().hex


def _respond(request: Request, status_code: int, code: str, message: str, *, retryable: bool = False, rid: Optional[str] = None) -> JSONResponse:
    rid = rid or _request_id_for(request)
    body = {
        "error": {"code": code, "message": message, "request_id": rid},
        "detail": message,
    }
    if retryable:
        body["error"]["retryable"] = True
    return JSONResponse(status_code=status_code, content=body, headers={"x-request-id": rid})


async def app_error_handler(request: Request, exc: AppError):
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(level, "app.error: %s", exc.message, extra={"error_code": exc.code, "status": exc.status_code, "path": request.url.path})
    return _respond(request, exc.status_code, exc.code, exc.message, retryable=exc.retryable, rid=exc.request_id)


async def http_error_handler(request: Request, exc: HTTPException):
    code = "not_found" if exc.status_code == 404 else "http_error"
    logger.warning("http.error", extra={"error_code": code, "status": exc.status_code, "path": request.url.path})
    return _respond(request, exc.status_code, code, str(exc.detail or "HTTP error"))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled.exception", exc_info=exc, extra={"error_code": "internal_error", "path": request.url.path})
    return _respond(request, 500, "internal_error", "Unexpected error")
