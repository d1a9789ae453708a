"""User persistence: the repository protocol and its in-memory implementation."""
from __future__ import annotations

import logging
from typing import Dict, List, Protocol

from .context import RequestContext
from .errors import ConflictError, NotFoundError
from .locks import ReadWriteLock
from .models import User

logger = logging.getLogger("userapi.repository")


class UserRepository(Protocol):
    """
    Abstraction over user storage.

    Implementations own id assignment and enforce that no two records share
    a username or an email. Every method takes the caller's
    :class:`RequestContext` so that backends performing I/O can honour
    cancellation.
    """

    def list_all(self, ctx: RequestContext) -> List[User]:
        """Return a snapshot of every stored user."""

        ...

    def find_by_id(self, ctx: RequestContext, user_id: int) -> User:
        """Return the user with ``user_id`` or raise :class:`NotFoundError`."""

        ...

    def find_by_username(self, ctx: RequestContext, username: str) -> User:
        ...

    def find_by_email(self, ctx: RequestContext, email: str) -> User:
        ...

    def create(self, ctx: RequestContext, user: User) -> User:
        """
        Store a new user and return it with its assigned id.

        Raises :class:`ConflictError` without storing anything when the
        username or email is already taken.
        """

        ...

    def update(self, ctx: RequestContext, user: User) -> User:
        """
        Replace the stored record that has ``user.id``.

        Raises :class:`NotFoundError` for an unknown id and
        :class:`ConflictError` when another record holds the username or email.
        """

        ...

    def delete(self, ctx: RequestContext, user_id: int) -> None:
        ...


class InMemoryUserRepository(UserRepository):
    """Thread-safe, process-local implementation of :class:`UserRepository`.

    A single reader/writer lock guards the records, the username/email
    indexes and the id counter. Reads share the lock; writes hold it alone.
    Callers always receive copies, never the stored objects.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._users: Dict[int, User] = {}
        self._ids_by_username: Dict[str, int] = {}
        self._ids_by_email: Dict[str, int] = {}
        self._next_id = 1

    def list_all(self, ctx: RequestContext) -> List[User]:
        with self._lock.read_locked():
            return [user.copy() for user in self._users.values()]

    def find_by_id(self, ctx: RequestContext, user_id: int) -> User:
        with self._lock.read_locked():
            user = self._users.get(user_id)
            if user is None:
                raise NotFoundError()
            return user.copy()

    def find_by_username(self, ctx: RequestContext, username: str) -> User:
        with self._lock.read_locked():
            return self._lookup_locked(self._ids_by_username, username)

    def find_by_email(self, ctx: RequestContext, email: str) -> User:
        with self._lock.read_locked():
            return self._lookup_locked(self._ids_by_email, email)

    def create(self, ctx: RequestContext, user: User) -> User:
        with self._lock.write_locked():
            if user.username in self._ids_by_username or user.email in self._ids_by_email:
                raise ConflictError()

            stored = user.copy()
            stored.id = self._next_id
            self._next_id += 1
            self._users[stored.id] = stored
            self._index_locked(stored)
            logger.debug("Stored user %s (%s)", stored.id, stored.username)
            return stored.copy()

    def update(self, ctx: RequestContext, user: User) -> User:
        with self._lock.write_locked():
            if user.id is None or user.id not in self._users:
                raise NotFoundError()

            for index, key in (
                (self._ids_by_username, user.username),
                (self._ids_by_email, user.email),
            ):
                holder = index.get(key)
                if holder is not None and holder != user.id:
                    raise ConflictError()

            self._unindex_locked(self._users[user.id])
            stored = user.copy()
            self._users[stored.id] = stored
            self._index_locked(stored)
            return stored.copy()

    def delete(self, ctx: RequestContext, user_id: int) -> None:
        with self._lock.write_locked():
            user = self._users.pop(user_id, None)
            if user is None:
                raise NotFoundError()
            self._unindex_locked(user)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._users)

    # ------------------------------------------------------------------
    # Internal helpers (callers must hold the lock)
    # ------------------------------------------------------------------
    def _lookup_locked(self, index: Dict[str, int], key: str) -> User:
        user_id = index.get(key)
        if user_id is None:
            raise NotFoundError()
        return self._users[user_id].copy()

    def _index_locked(self, user: User) -> None:
        self._ids_by_username[user.username] = user.id
        self._ids_by_email[user.email] = user.id

    def _unindex_locked(self, user: User) -> None:
        self._ids_by_username.pop(user.username, None)
        self._ids_by_email.pop(user.email, None)


__all__ = ["InMemoryUserRepository", "UserRepository"]
