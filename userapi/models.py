"""Domain models for the user service."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional


@dataclass
class User:
    """A stored user record.

    ``id`` is ``None`` until the repository assigns one on creation.
    """

    username: str
    email: str
    password_digest: str
    created_at: datetime
    updated_at: datetime
    first_name: str = ""
    last_name: str = ""
    id: Optional[int] = None

    def copy(self) -> "User":
        return replace(self)

    def to_response(self) -> "UserResponse":
        if self.id is None:
            raise ValueError("Cannot project a user that has not been stored")
        return UserResponse(
            id=self.id,
            username=self.username,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass(frozen=True)
class UserResponse:
    """Read-only projection of :class:`User` without the password digest."""

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class CreateUserRequest:
    username: str
    email: str
    password: str
    first_name: str = ""
    last_name: str = ""


@dataclass(frozen=True)
class UpdateUserRequest:
    """Partial update; an empty string leaves the stored value unchanged."""

    username: str = ""
    email: str = ""
    password: str = ""
    first_name: str = ""
    last_name: str = ""


__all__ = ["CreateUserRequest", "UpdateUserRequest", "User", "UserResponse"]
