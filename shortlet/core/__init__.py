"""Core utilities: errors, clock, retry, security."""

from shortlet.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    ConcurrentUpdateError,
    DuplicateReleaseError,
    EvidenceRequiredError,
    InsufficientBalanceError,
    InvalidConfigError,
    InvalidTransitionError,
    NotFoundError,
    PayoutAccountMissingError,
    TransientStorageError,
    ValidationError,
    WindowClosedError,
)

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "ConcurrentUpdateError",
    "DuplicateReleaseError",
    "EvidenceRequiredError",
    "InsufficientBalanceError",
    "InvalidConfigError",
    "InvalidTransitionError",
    "NotFoundError",
    "PayoutAccountMissingError",
    "TransientStorageError",
    "ValidationError",
    "WindowClosedError",
]
