# storefront/core/errors.py
"""
Error kinds raised by the services.

Every kind is an HTTPException with a fixed status code, so routers do not
need to translate anything: FastAPI renders them as `{"detail": message}`.
"""

from typing import Any

from fastapi import HTTPException, status


class ShopError(HTTPException):
    """Base class for all expected business errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None, errors: Any = None):
        self.message = message or self.default_message
        self.errors = errors
        detail: Any = self.message
        if errors is not None:
            detail = {"message": self.message, "errors": errors}
        super().__init__(status_code=self.status_code, detail=detail)


class InvalidRequest(ShopError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFound(ShopError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InsufficientStock(ShopError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Not enough stock available"


class Expired(ShopError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "This coupon has expired or is not active"


class PreconditionFailed(ShopError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Precondition failed"


class InvalidState(ShopError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Operation not allowed in the current state"


class Conflict(ShopError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class Forbidden(ShopError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not authorized to perform this action"
