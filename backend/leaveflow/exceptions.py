from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int
    context: dict[str, Any] | None = None


class AppError(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.context = context
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed caller input: bad dates, mismatched batch, unknown leave type."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


class NotFoundError(AppError):
    def __init__(self, message: str = "Leave request not found") -> None:
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Not authorized to perform this action") -> None:
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


class InsufficientBalanceError(AppError):
    """The ledger row cannot cover the requested units."""

    def __init__(self, available: float, requested: float) -> None:
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient leave balance. Available: {available:g}, Requested: {requested:g}",
            status_code=status.HTTP_409_CONFLICT,
            context={"available": available, "requested": requested},
        )


class InvalidTransitionError(AppError):
    """The requested action is not legal from the request's current status."""

    def __init__(self, current_status: str, action: str) -> None:
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action.replace('_', ' ')} a leave request in status '{current_status}'",
            status_code=status.HTTP_409_CONFLICT,
            context={"current_status": current_status, "action": action},
        )


class LedgerInvariantError(AppError):
    """A ledger mutation would break ``0 <= used``, ``0 <= pending`` or ``used + pending <= allocated``."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


class ConcurrencyConflictError(AppError):
    """A concurrent writer changed a row this unit of work depends on. Retryable."""

    def __init__(self, message: str = "Concurrent modification detected") -> None:
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


class RetryExhaustedError(AppError):
    """Concurrency conflicts persisted through every retry; the caller may try again later."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(
            "The leave system is busy, please retry",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            context={"attempts": attempts},
        )


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
            context=exc.context,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
