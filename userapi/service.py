"""Business rules for managing users on top of a :class:`UserRepository`."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List

from .context import RequestContext
from .errors import AlreadyExistsError, ConflictError, InvalidArgumentError, NotFoundError
from .models import CreateUserRequest, UpdateUserRequest, User, UserResponse
from .passwords import hash_password
from .repository import UserRepository

logger = logging.getLogger("userapi.service")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserService:
    """Validate, merge and stamp user records before handing them to storage.

    Uniqueness is checked twice. The service looks up the username and
    email first and reports the colliding field as :class:`AlreadyExistsError`;
    the repository re-checks atomically when writing. Two concurrent requests
    for the same username can both pass the first check, in which case the
    loser receives the less specific :class:`ConflictError`.
    """

    def __init__(
        self,
        repository: UserRepository,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._clock = clock

    def list_users(self, ctx: RequestContext) -> List[UserResponse]:
        return [user.to_response() for user in self._repository.list_all(ctx)]

    def get_user(self, ctx: RequestContext, user_id: int) -> UserResponse:
        return self._repository.find_by_id(ctx, user_id).to_response()

    def create_user(self, ctx: RequestContext, request: CreateUserRequest) -> UserResponse:
        for field_name in ("username", "email"):
            if not getattr(request, field_name):
                raise InvalidArgumentError(f"{field_name} must not be empty")

        if self._is_taken(self._repository.find_by_username, ctx, request.username):
            raise AlreadyExistsError("username")
        if self._is_taken(self._repository.find_by_email, ctx, request.email):
            raise AlreadyExistsError("email")

        now = self._clock()
        user = User(
            username=request.username,
            email=request.email,
            password_digest=hash_password(request.password),
            first_name=request.first_name,
            last_name=request.last_name,
            created_at=now,
            updated_at=now,
        )

        try:
            stored = self._repository.create(ctx, user)
        except ConflictError as exc:
            raise ConflictError("failed to create user: record already exists") from exc

        logger.info("Created user %s (%s)", stored.id, stored.username)
        return stored.to_response()

    def update_user(
        self,
        ctx: RequestContext,
        user_id: int,
        request: UpdateUserRequest,
    ) -> UserResponse:
        user = self._repository.find_by_id(ctx, user_id)

        if request.username and request.username != user.username:
            if self._is_taken(self._repository.find_by_username, ctx, request.username, exclude_id=user_id):
                raise AlreadyExistsError("username")
        if request.email and request.email != user.email:
            if self._is_taken(self._repository.find_by_email, ctx, request.email, exclude_id=user_id):
                raise AlreadyExistsError("email")

        if request.username:
            user.username = request.username
        if request.email:
            user.email = request.email
        if request.password:
            user.password_digest = hash_password(request.password)
        if request.first_name:
            user.first_name = request.first_name
        if request.last_name:
            user.last_name = request.last_name
        user.updated_at = self._clock()

        stored = self._repository.update(ctx, user)
        logger.info("Updated user %s (%s)", stored.id, stored.username)
        return stored.to_response()

    def delete_user(self, ctx: RequestContext, user_id: int) -> None:
        self._repository.delete(ctx, user_id)
        logger.info("Deleted user %s", user_id)

    @staticmethod
    def _is_taken(
        lookup: Callable[[RequestContext, str], User],
        ctx: RequestContext,
        value: str,
        *,
        exclude_id: int | None = None,
    ) -> bool:
        try:
            existing = lookup(ctx, value)
        except NotFoundError:
            return False
        return existing.id != exclude_id


__all__ = ["UserService"]
