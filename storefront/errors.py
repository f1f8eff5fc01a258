"""
Error taxonomy shared by the domain modules and the HTTP layer.

Services raise a ``StoreError`` subclass and never build responses themselves;
``register_exception_handlers`` turns each one into exactly one JSON response.
"""

import logging
from enum import Enum

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("storefront.errors")


class ErrorCategory(str, Enum):
    VALIDATION = "validation_error"
    AUTHENTICATION = "authentication_error"
    AUTHORIZATION = "authorization_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal_error"
    GATEWAY_ERROR = "gateway_error"


class StoreError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    category = ErrorCategory.INTERNAL

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailure(StoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    category = ErrorCategory.VALIDATION


class UnauthorizedError(StoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    category = ErrorCategory.AUTHENTICATION


class PermissionDeniedError(StoreError):
    status_code = status.HTTP_403_FORBIDDEN
    category = ErrorCategory.AUTHORIZATION


class NotFoundError(StoreError):
    status_code = status.HTTP_404_NOT_FOUND
    category = ErrorCategory.NOT_FOUND


class ConflictError(StoreError):
    status_code = status.HTTP_409_CONFLICT
    category = ErrorCategory.CONFLICT


class UpstreamError(StoreError):
    status_code = status.HTTP_502_BAD_GATEWAY
    category = ErrorCategory.GATEWAY_ERROR


def _error_body(message, category: ErrorCategory) -> dict:
    return {"detail": message, "category": category.value}


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.category))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Field-level detail, minus the echoed input values
    errors = [{"loc": e.get("loc"), "msg": e.get("msg"), "type": e.get("type")} for e in exc.errors()]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(jsonable_encoder(errors), ErrorCategory.VALIDATION),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unexpected error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("An unexpected error occurred", ErrorCategory.INTERNAL),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
