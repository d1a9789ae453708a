"""Error types raised by the user repository and service."""
from __future__ import annotations


class UserAPIError(RuntimeError):
    """Base class for failures reported by the user core."""


class NotFoundError(UserAPIError):
    """Raised when a requested record does not exist."""

    def __init__(self, message: str = "record not found") -> None:
        super().__init__(message)


class ConflictError(UserAPIError):
    """Raised when a write would break username or email uniqueness."""

    def __init__(self, message: str = "record already exists") -> None:
        super().__init__(message)


class AlreadyExistsError(UserAPIError):
    """Raised by the service when a username or email is already taken."""

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} already exists")
        self.field = field


class InvalidArgumentError(UserAPIError, ValueError):
    """Raised when a caller supplies a malformed identifier."""


class OperationCancelledError(UserAPIError):
    """Raised when a request context was cancelled or its deadline passed."""


__all__ = [
    "AlreadyExistsError",
    "ConflictError",
    "InvalidArgumentError",
    "NotFoundError",
    "OperationCancelledError",
    "UserAPIError",
]
