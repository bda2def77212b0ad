"""Domain errors raised by the order services.

Every error carries an HTTP status, a machine-readable ``code`` and a concrete
human message so client apps can render actionable feedback.
"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class LaundryError(Exception):
    """Base class for client-visible domain errors."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class NotFoundError(LaundryError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class BadRequestError(LaundryError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"


class ForbiddenError(LaundryError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class ConflictError(LaundryError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class OrderNumberExhaustedError(LaundryError):
    """Every order-number attempt collided; not correctable by the client."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "ORDER_NUMBER_CONFLICT"


async def laundry_error_handler(request: Request, exc: LaundryError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LaundryError, laundry_error_handler)
