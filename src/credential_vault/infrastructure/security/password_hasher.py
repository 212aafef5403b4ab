"""Bcrypt password hasher adapter."""

from __future__ import annotations

import secrets

import bcrypt

from credential_vault.application.ports.password_hasher_port import PasswordHasherPort
from credential_vault.domain.credentials import MAX_SECRET_BYTES

DEFAULT_BCRYPT_ROUNDS = 10


class BcryptPasswordHasher(PasswordHasherPort):
    """Password hashing adapter using bcrypt with a configurable work factor.

    Malformed digests are compared against a decoy digest of the same cost, so a
    rejected secret takes as long whether the stored digest was bad or merely
    did not match.
    """

    def __init__(self, *, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._rounds = rounds
        self._decoy_hash = bcrypt.hashpw(secrets.token_bytes(16), bcrypt.gensalt(rounds))

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash_password(self, password: str) -> str:
        encoded = password.encode("utf-8")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(self._rounds)).decode("utf-8")

    def verify_password(self, *, password: str, password_hash: str) -> bool:
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_SECRET_BYTES:
            # Older bcrypt releases truncate instead of rejecting; never let a
            # longer secret match on its first 72 bytes.
            self._spend_decoy_comparison(encoded)
            return False
        try:
            return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
        except ValueError:
            self._spend_decoy_comparison(encoded)
            return False

    def _spend_decoy_comparison(self, encoded: bytes) -> None:
        bcrypt.checkpw(encoded[:MAX_SECRET_BYTES], self._decoy_hash)
