"""Tests for the password digest helpers."""

from __future__ import annotations

import hashlib
import sys
import unittest
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from userapi.passwords import hash_password, verify_password


class PasswordHashingTests(unittest.TestCase):
    def test_hash_is_deterministic(self) -> None:
        self.assertEqual(hash_password("p1"), hash_password("p1"))

    def test_hash_is_hex_sha256(self) -> None:
        expected = hashlib.sha256(b"supersecurepassword").hexdigest()
        self.assertEqual(hash_password("supersecurepassword"), expected)
        self.assertEqual(len(hash_password("")), 64)

    def test_hash_differs_for_different_input(self) -> None:
        self.assertNotEqual(hash_password("p1"), hash_password("p2"))

    def test_verify_accepts_matching_password(self) -> None:
        hashed = hash_password("anothersecurepassword")
        self.assertTrue(verify_password(hashed, "anothersecurepassword"))

    def test_verify_rejects_other_password(self) -> None:
        hashed = hash_password("anothersecurepassword")
        self.assertFalse(verify_password(hashed, "incorrect"))
        self.assertFalse(verify_password(hashed, "Anothersecurepassword"))

    def test_verify_rejects_empty_digest(self) -> None:
        self.assertFalse(verify_password("", "anything"))

    def test_non_ascii_passwords_round_trip(self) -> None:
        hashed = hash_password("pässwörd-✓")
        self.assertTrue(verify_password(hashed, "pässwörd-✓"))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
