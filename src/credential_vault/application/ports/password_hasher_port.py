"""Port for password hashing and verification."""

from __future__ import annotations

from typing import Protocol


class PasswordHasherPort(Protocol):
    """One-way salted digest contract used for stored secrets."""

    def hash_password(self, password: str) -> str:
        """Return a freshly salted digest of a plaintext secret."""

    def verify_password(self, *, password: str, password_hash: str) -> bool:
        """Return whether plaintext matches digest; malformed digests yield False."""
