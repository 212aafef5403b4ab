"""Application service for credential registration and verification."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from credential_vault.application.ports.credential_store_port import (
    CredentialCreateInput,
    CredentialStorePort,
    DuplicateKeyError,
    StoreUnavailableError,
)
from credential_vault.application.ports.password_hasher_port import PasswordHasherPort
from credential_vault.domain.credentials import (
    normalize_contact_email,
    normalize_contact_phone,
    normalize_display_name,
    normalize_identity,
    require_secret,
)
from credential_vault.domain.store_backend import StoreBackend

logger = logging.getLogger(__name__)

# Never a valid bcrypt digest; unknown identities are checked against it so they
# cost one full hash comparison, like a wrong secret does.
_ABSENT_SECRET_HASH = ""


class CredentialValidationError(ValueError):
    """Raised when required credential inputs are missing or malformed."""

    def __init__(self, *, fields: tuple[str, ...]) -> None:
        super().__init__(f"missing or invalid fields: {', '.join(fields)}")
        self.fields = fields


class DuplicateIdentityError(ValueError):
    """Raised when the identity or contact email is already registered."""

    def __init__(self) -> None:
        super().__init__("identity or email already registered")


class InvalidCredentialError(PermissionError):
    """Raised for unknown identities and wrong secrets alike."""

    def __init__(self) -> None:
        super().__init__("invalid credentials")


class ConfirmationOutcome(StrEnum):
    """Successful credential protocol outcomes."""

    REGISTERED = "registered"
    VERIFIED = "verified"


@dataclass(frozen=True)
class CredentialConfirmation:
    """Success result carrying no secret material."""

    identity: str
    outcome: ConfirmationOutcome


@dataclass(frozen=True)
class StoreStatus:
    """Connectivity snapshot of the configured credential store."""

    backend: StoreBackend
    reachable: bool


class CredentialService:
    """Register identities and verify login attempts against stored digests."""

    def __init__(
        self,
        *,
        store: CredentialStorePort,
        password_hasher: PasswordHasherPort,
    ) -> None:
        self._store = store
        self._password_hasher = password_hasher

    async def register(
        self,
        *,
        identity: str | None,
        display_name: str | None,
        secret: str | None,
        contact_email: str | None,
        contact_phone: str | None = None,
    ) -> CredentialConfirmation:
        """Create one credential record, hashing the secret exactly once."""

        invalid: list[str] = []
        normalized_identity = _normalize_field(
            invalid, "identity", identity, lambda value: normalize_identity(identity=value)
        )
        normalized_display_name = _normalize_field(
            invalid,
            "display_name",
            display_name,
            lambda value: normalize_display_name(display_name=value),
        )
        raw_secret = _normalize_field(
            invalid, "secret", secret, lambda value: require_secret(secret=value)
        )
        normalized_email = _normalize_field(
            invalid,
            "contact_email",
            contact_email,
            lambda value: normalize_contact_email(email=value),
        )
        if invalid:
            raise CredentialValidationError(fields=tuple(invalid))

        await self._provision_schema()

        existing = await self._store.find_by_identity_or_email(
            identity=normalized_identity,
            email=normalized_email,
        )
        if existing is not None:
            logger.info(
                "credential_register_rejected identity=%s reason=duplicate",
                normalized_identity,
            )
            raise DuplicateIdentityError()

        secret_hash = await asyncio.to_thread(self._password_hasher.hash_password, raw_secret)

        try:
            await self._store.insert(
                CredentialCreateInput(
                    identity=normalized_identity,
                    display_name=normalized_display_name,
                    secret_hash=secret_hash,
                    contact_email=normalized_email,
                    contact_phone=normalize_contact_phone(phone=contact_phone),
                )
            )
        except DuplicateKeyError as error:
            logger.info(
                "credential_register_rejected identity=%s reason=duplicate_on_insert",
                normalized_identity,
            )
            raise DuplicateIdentityError() from error

        logger.info("credential_registered identity=%s", normalized_identity)
        return CredentialConfirmation(
            identity=normalized_identity,
            outcome=ConfirmationOutcome.REGISTERED,
        )

    async def verify(
        self,
        *,
        identity: str | None,
        secret: str | None,
    ) -> CredentialConfirmation:
        """Check one login attempt; unknown identity and wrong secret look the same."""

        invalid: list[str] = []
        normalized_identity = _normalize_field(
            invalid, "identity", identity, lambda value: normalize_identity(identity=value)
        )
        if not isinstance(secret, str) or not secret:
            invalid.append("secret")
        if invalid:
            raise CredentialValidationError(fields=tuple(invalid))
        assert secret is not None

        await self._provision_schema()

        record = await self._store.find_by_identity(identity=normalized_identity)
        password_hash = record.secret_hash if record is not None else _ABSENT_SECRET_HASH
        is_valid = await asyncio.to_thread(
            self._password_hasher.verify_password,
            password=secret,
            password_hash=password_hash,
        )
        if record is None or not is_valid:
            logger.info("credential_verify_failed identity=%s", normalized_identity)
            raise InvalidCredentialError()

        logger.info("credential_verified identity=%s", normalized_identity)
        return CredentialConfirmation(
            identity=normalized_identity,
            outcome=ConfirmationOutcome.VERIFIED,
        )

    async def store_status(self) -> StoreStatus:
        """Check store connectivity without raising on infrastructure failures."""

        try:
            await self._store.ping()
        except StoreUnavailableError:
            return StoreStatus(backend=self._store.backend, reachable=False)
        return StoreStatus(backend=self._store.backend, reachable=True)

    async def _provision_schema(self) -> None:
        """Attempt idempotent schema provisioning; failure is logged, not raised."""

        try:
            await self._store.ensure_schema()
        except StoreUnavailableError:
            logger.warning("credential_schema_provisioning_failed")


def _normalize_field(
    invalid: list[str],
    field_name: str,
    value: str | None,
    normalizer: Callable[[str], str],
) -> str:
    """Return normalized value, recording the field name when it is rejected."""

    if not isinstance(value, str):
        invalid.append(field_name)
        return ""
    try:
        return normalizer(value)
    except ValueError:
        invalid.append(field_name)
        return ""
