from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, fields

import pytest

from credential_vault.application.ports.credential_store_port import (
    CredentialCreateInput,
    CredentialRecord,
    DuplicateKeyError,
    StoreUnavailableError,
)
from credential_vault.application.services.credential_service import (
    ConfirmationOutcome,
    CredentialService,
    CredentialValidationError,
    DuplicateIdentityError,
    InvalidCredentialError,
)
from credential_vault.domain.store_backend import StoreBackend


@dataclass
class FakeCredentialStore:
    records: dict[str, CredentialRecord] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    unavailable_on: set[str] = field(default_factory=set)
    race_on_insert: bool = False
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def backend(self) -> StoreBackend:
        return StoreBackend.EMBEDDED

    def _record_call(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.unavailable_on:
            raise StoreUnavailableError(operation=operation)

    async def ensure_schema(self) -> None:
        self._record_call("ensure_schema")

    async def find_by_identity_or_email(
        self,
        *,
        identity: str,
        email: str,
    ) -> CredentialRecord | None:
        self._record_call("find_by_identity_or_email")
        await asyncio.sleep(0)
        for record in self.records.values():
            if record.identity == identity or record.contact_email == email:
                return record
        return None

    async def find_by_identity(self, *, identity: str) -> CredentialRecord | None:
        self._record_call("find_by_identity")
        return self.records.get(identity)

    async def insert(self, payload: CredentialCreateInput) -> CredentialRecord:
        self._record_call("insert")
        async with self._lock:
            if self.race_on_insert:
                raise DuplicateKeyError("identity or email already exists")
            emails = {record.contact_email for record in self.records.values()}
            if payload.identity in self.records or payload.contact_email in emails:
                raise DuplicateKeyError("identity or email already exists")
            record = CredentialRecord(
                identity=payload.identity,
                display_name=payload.display_name,
                secret_hash=payload.secret_hash,
                contact_email=payload.contact_email,
                contact_phone=payload.contact_phone,
            )
            self.records[payload.identity] = record
            return record

    async def ping(self) -> None:
        self._record_call("ping")


class FakePasswordHasher:
    def __init__(self) -> None:
        self.hash_calls: list[str] = []
        self.verify_calls: list[tuple[str, str]] = []

    def hash_password(self, password: str) -> str:
        self.hash_calls.append(password)
        return f"hashed::{len(self.hash_calls)}::{password[::-1]}"

    def verify_password(self, *, password: str, password_hash: str) -> bool:
        self.verify_calls.append((password, password_hash))
        return password_hash.startswith("hashed::") and password_hash.endswith(
            f"::{password[::-1]}"
        )


def _service(
    store: FakeCredentialStore | None = None,
) -> tuple[CredentialService, FakeCredentialStore, FakePasswordHasher]:
    resolved_store = store or FakeCredentialStore()
    hasher = FakePasswordHasher()
    return CredentialService(store=resolved_store, password_hasher=hasher), resolved_store, hasher


async def _register_alice(service: CredentialService) -> None:
    await service.register(
        identity="alice",
        display_name="Alice",
        secret="p@ss",
        contact_email="a@x.com",
        contact_phone="555-0100",
    )


@pytest.mark.asyncio
async def test_register_stores_hash_once_and_returns_confirmation_without_secrets() -> None:
    service, store, hasher = _service()

    result = await service.register(
        identity="  alice ",
        display_name="Alice",
        secret="p@ss",
        contact_email=" A@X.com ",
        contact_phone="   ",
    )

    assert result.identity == "alice"
    assert result.outcome is ConfirmationOutcome.REGISTERED
    assert {item.name for item in fields(result)} == {"identity", "outcome"}
    assert hasher.hash_calls == ["p@ss"]
    record = store.records["alice"]
    assert record.secret_hash != "p@ss"
    assert "p@ss" not in record.secret_hash
    assert record.contact_email == "a@x.com"
    assert record.contact_phone is None
    assert store.calls == ["ensure_schema", "find_by_identity_or_email", "insert"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("overrides", "expected_fields"),
    [
        ({"identity": None}, ("identity",)),
        ({"display_name": "   "}, ("display_name",)),
        ({"secret": ""}, ("secret",)),
        ({"contact_email": None, "secret": None}, ("secret", "contact_email")),
        ({"secret": "x" * 73}, ("secret",)),
    ],
)
async def test_register_missing_fields_raise_validation_error_without_store_access(
    overrides: dict[str, str | None],
    expected_fields: tuple[str, ...],
) -> None:
    service, store, hasher = _service()
    arguments: dict[str, str | None] = {
        "identity": "alice",
        "display_name": "Alice",
        "secret": "p@ss",
        "contact_email": "a@x.com",
    }
    arguments.update(overrides)

    with pytest.raises(CredentialValidationError) as exc_info:
        await service.register(**arguments)

    assert exc_info.value.fields == expected_fields
    assert store.calls == []
    assert hasher.hash_calls == []


@pytest.mark.asyncio
async def test_register_duplicate_identity_skips_hashing_and_insert() -> None:
    service, store, hasher = _service()
    await _register_alice(service)
    store.calls.clear()

    with pytest.raises(DuplicateIdentityError):
        await service.register(
            identity="alice",
            display_name="Other",
            secret="other",
            contact_email="other@x.com",
        )

    assert hasher.hash_calls == ["p@ss"]
    assert "insert" not in store.calls
    assert list(store.records) == ["alice"]


@pytest.mark.asyncio
async def test_register_duplicate_email_is_rejected_like_duplicate_identity() -> None:
    service, store, _ = _service()
    await _register_alice(service)

    with pytest.raises(DuplicateIdentityError) as exc_info:
        await service.register(
            identity="bob",
            display_name="Bob",
            secret="bob-secret",
            contact_email="A@x.com",
        )

    assert str(exc_info.value) == "identity or email already registered"
    assert "bob" not in store.records


@pytest.mark.asyncio
async def test_register_insert_conflict_maps_to_same_duplicate_outcome() -> None:
    store = FakeCredentialStore(race_on_insert=True)
    service, _, hasher = _service(store)

    with pytest.raises(DuplicateIdentityError) as exc_info:
        await _register_alice(service)

    assert str(exc_info.value) == str(DuplicateIdentityError())
    assert isinstance(exc_info.value.__cause__, DuplicateKeyError)
    assert hasher.hash_calls == ["p@ss"]
    assert store.records == {}


@pytest.mark.asyncio
async def test_verify_accepts_matching_secret() -> None:
    service, _, hasher = _service()
    await _register_alice(service)

    result = await service.verify(identity="alice", secret="p@ss")

    assert result.identity == "alice"
    assert result.outcome is ConfirmationOutcome.VERIFIED
    assert len(hasher.verify_calls) == 1


@pytest.mark.asyncio
async def test_unknown_identity_and_wrong_secret_fail_identically() -> None:
    service, _, hasher = _service()
    await _register_alice(service)

    with pytest.raises(InvalidCredentialError) as wrong_secret:
        await service.verify(identity="alice", secret="wrong")
    with pytest.raises(InvalidCredentialError) as unknown_identity:
        await service.verify(identity="mallory", secret="p@ss")

    assert type(wrong_secret.value) is type(unknown_identity.value)
    assert str(wrong_secret.value) == str(unknown_identity.value) == "invalid credentials"
    assert len(hasher.verify_calls) == 2
    assert hasher.verify_calls[1] == ("p@ss", "")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("identity", "secret", "expected_fields"),
    [
        (None, "p@ss", ("identity",)),
        ("alice", "", ("secret",)),
        ("  ", None, ("identity", "secret")),
    ],
)
async def test_verify_missing_fields_raise_validation_error(
    identity: str | None,
    secret: str | None,
    expected_fields: tuple[str, ...],
) -> None:
    service, store, hasher = _service()

    with pytest.raises(CredentialValidationError) as exc_info:
        await service.verify(identity=identity, secret=secret)

    assert exc_info.value.fields == expected_fields
    assert store.calls == []
    assert hasher.verify_calls == []


@pytest.mark.asyncio
async def test_store_unavailable_propagates_instead_of_logical_outcome() -> None:
    store = FakeCredentialStore(unavailable_on={"find_by_identity", "find_by_identity_or_email"})
    service, _, hasher = _service(store)

    with pytest.raises(StoreUnavailableError):
        await service.verify(identity="alice", secret="p@ss")
    with pytest.raises(StoreUnavailableError):
        await _register_alice(service)

    assert hasher.hash_calls == []
    assert hasher.verify_calls == []


@pytest.mark.asyncio
async def test_schema_provisioning_failure_is_logged_and_not_fatal(
    caplog: pytest.LogCaptureFixture,
) -> None:
    store = FakeCredentialStore(unavailable_on={"ensure_schema"})
    service, _, _ = _service(store)

    with caplog.at_level(logging.WARNING):
        await _register_alice(service)

    assert "alice" in store.records
    assert "credential_schema_provisioning_failed" in caplog.text


@pytest.mark.asyncio
async def test_logs_never_contain_secret_or_digest(caplog: pytest.LogCaptureFixture) -> None:
    service, store, _ = _service()

    with caplog.at_level(logging.DEBUG):
        await _register_alice(service)
        await service.verify(identity="alice", secret="p@ss")
        with pytest.raises(InvalidCredentialError):
            await service.verify(identity="alice", secret="wrong")

    assert "p@ss" not in caplog.text
    assert store.records["alice"].secret_hash not in caplog.text


@pytest.mark.asyncio
async def test_concurrent_registrations_for_one_identity_yield_single_success() -> None:
    service, store, _ = _service()

    results = await asyncio.gather(
        *(
            service.register(
                identity="alice",
                display_name="Alice",
                secret=f"secret-{index}",
                contact_email=f"alice{index}@x.com",
            )
            for index in range(8)
        ),
        return_exceptions=True,
    )

    successes = [result for result in results if not isinstance(result, BaseException)]
    duplicates = [result for result in results if isinstance(result, DuplicateIdentityError)]
    assert len(successes) == 1
    assert len(duplicates) == 7
    assert list(store.records) == ["alice"]


@pytest.mark.asyncio
async def test_store_status_reports_reachability() -> None:
    service, store, _ = _service()

    reachable = await service.store_status()
    store.unavailable_on.add("ping")
    unreachable = await service.store_status()

    assert reachable.backend is StoreBackend.EMBEDDED
    assert reachable.reachable is True
    assert unreachable.reachable is False
