# app/core/errors.py
"""
Typed errors raised by services and repositories.

Routers never translate these by hand; `register_error_handlers` maps each
type to an HTTP response of the form {"error": <type>, "detail": <message>}.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ShopError(Exception):
    """Base class for all domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type: str = "shop_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(ShopError):
    """Local, pre-network input validation failure."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_type = "validation_error"


class InvalidTransitionError(ValidationError):
    """Requested order status change is not allowed from the current state."""

    status_code = status.HTTP_409_CONFLICT
    error_type = "invalid_transition"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Invalid status transition: {current} -> {target}")


class NotFoundError(ShopError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "not_found"


class PersistenceError(ShopError):
    """Backend unreachable or write rejected. Retryable by the caller."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_type = "persistence_error"


class DuplicateOrderNumberError(PersistenceError):
    error_type = "duplicate_order_number"


class StorageError(PersistenceError):
    error_type = "storage_error"


class NotificationError(ShopError):
    """Operator alert or customer email could not be sent."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_type = "notification_error"


class AuthenticationError(ShopError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "authentication_error"


async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s: %s",
            request.method,
            request.url.path,
            exc.error_type,
            exc.message,
        )
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error_type, "detail": exc.message},
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ShopError, shop_error_handler)  # type: ignore[arg-type]
