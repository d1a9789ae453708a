"""In-memory user management service with a REST API."""

from __future__ import annotations

from typing import Any

from .context import RequestContext
from .repository import InMemoryUserRepository, UserRepository
from .service import UserService


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the FastAPI application."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "InMemoryUserRepository",
    "RequestContext",
    "UserRepository",
    "UserService",
    "create_app",
]
