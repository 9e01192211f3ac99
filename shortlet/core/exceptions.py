"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)

    def __str__(self) -> str:
        return str(self.detail)


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    """Authorization denied exception."""

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InvalidConfigError(AppException):
    """Finance configuration is missing or out of range."""

    def __init__(self, detail: str = "Finance configuration is invalid") -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class InvalidTransitionError(AppException):
    """Booking, dispute or payout state does not allow the operation."""

    def __init__(self, detail: str = "This operation is not allowed in the current state") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class WindowClosedError(AppException):
    """The time window for the action is not open."""

    def __init__(self, detail: str = "The window for this action is closed") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class EvidenceRequiredError(AppException):
    """A dispute was filed without any uploaded evidence."""

    def __init__(self, detail: str = "At least one uploaded evidence file is required") -> None:
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class InsufficientBalanceError(AppException):
    """Insufficient released balance for payout."""

    def __init__(self, detail: str = "Insufficient balance for this operation") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class PayoutAccountMissingError(AppException):
    """Host has no registered payout destination."""

    def __init__(self, detail: str = "Register a payout account before requesting a payout") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class TransientStorageError(AppException):
    """Persistence store is temporarily unavailable; safe to retry."""

    def __init__(self, detail: str = "Storage is temporarily unavailable") -> None:
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class ConcurrentUpdateError(TransientStorageError):
    """Record changed underneath us (optimistic version check failed)."""

    def __init__(self, resource: str = "Record", identifier: str | None = None) -> None:
        detail = f"{resource} was modified concurrently"
        if identifier:
            detail = f"{resource} '{identifier}' was modified concurrently"
        super().__init__(detail=detail)
        self.status_code = status.HTTP_409_CONFLICT


class DuplicateReleaseError(AppException):
    """A release event for (booking, event type) already exists."""

    def __init__(self, booking_id: str, event_type: str) -> None:
        self.booking_id = booking_id
        self.event_type = event_type
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Release {event_type} already recorded for booking {booking_id}",
        )
