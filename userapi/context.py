"""Cancellation-aware context passed through every repository call."""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from .errors import OperationCancelledError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RequestContext:
    """Carries cancellation state and an optional deadline for one request.

    The in-memory repository never blocks, so it accepts the context without
    consulting it. Backends that perform I/O should call :meth:`check` before
    doing work on behalf of a caller that may have gone away.
    """

    deadline: Optional[datetime] = None
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False)

    @classmethod
    def background(cls) -> "RequestContext":
        """Return a context that is never cancelled and has no deadline."""

        return cls()

    @classmethod
    def with_timeout(cls, timeout: timedelta) -> "RequestContext":
        return cls(deadline=_utcnow() + timeout)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and _utcnow() >= self.deadline

    @property
    def done(self) -> bool:
        return self.cancelled or self.expired

    def check(self) -> None:
        """Raise :class:`OperationCancelledError` if the request is finished."""

        if self.cancelled:
            raise OperationCancelledError("Request was cancelled")
        if self.expired:
            raise OperationCancelledError("Request deadline exceeded")


__all__ = ["RequestContext"]
