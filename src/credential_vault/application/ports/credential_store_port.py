"""Port for credential record persistence."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from credential_vault.domain.store_backend import StoreBackend


class DuplicateKeyError(ValueError):
    """Raised when an insert violates the identity or email uniqueness constraint."""


class StoreUnavailableError(RuntimeError):
    """Raised on connectivity, timeout, or missing-schema failures.

    The message never carries driver text so it is safe to surface to callers.
    """

    def __init__(self, *, operation: str) -> None:
        super().__init__(f"credential store unavailable during {operation}")
        self.operation = operation


@dataclass(frozen=True)
class CredentialCreateInput:
    """Input payload for inserting one credential row."""

    identity: str
    display_name: str
    secret_hash: str
    contact_email: str
    contact_phone: str | None = None


@dataclass(frozen=True)
class CredentialRecord:
    """Credential persistence model used across repository boundaries."""

    identity: str
    display_name: str
    secret_hash: str
    contact_email: str
    contact_phone: str | None
    created_at: datetime | None = None


class CredentialStorePort(Protocol):
    """Credential store contract shared by every storage backend."""

    @property
    def backend(self) -> StoreBackend:
        """Return the storage medium behind this store."""

    async def ensure_schema(self) -> None:
        """Create the credentials table when absent; no-op otherwise."""

    async def find_by_identity_or_email(
        self,
        *,
        identity: str,
        email: str,
    ) -> CredentialRecord | None:
        """Return the first record matching identity or email, if any."""

    async def find_by_identity(self, *, identity: str) -> CredentialRecord | None:
        """Return record keyed by identity or None."""

    async def insert(self, payload: CredentialCreateInput) -> CredentialRecord:
        """Insert one record; raise DuplicateKeyError on uniqueness violations."""

    async def ping(self) -> None:
        """Round-trip a trivial query; raise StoreUnavailableError on failure."""
