"""Password digest helpers for stored user credentials."""
from __future__ import annotations

import hashlib
import hmac


def hash_password(password: str) -> str:
    """Return the hex encoded SHA-256 digest of ``password``.

    The digest is deterministic: hashing the same plaintext twice yields the
    same value. It is a placeholder for a proper key-derivation function.
    """

    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_password(hashed: str, password: str) -> bool:
    """Return ``True`` if ``password`` hashes to ``hashed``."""

    if not hashed:
        return False
    return hmac.compare_digest(hash_password(password), hashed)


__all__ = ["hash_password", "verify_password"]
