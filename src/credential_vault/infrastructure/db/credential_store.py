"""SQLAlchemy adapter for credential store operations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import cast

import sqlalchemy as sa
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.schema import CreateTable

from credential_vault.application.ports.credential_store_port import (
    CredentialCreateInput,
    CredentialRecord,
    CredentialStorePort,
    DuplicateKeyError,
    StoreUnavailableError,
)
from credential_vault.domain.store_backend import StoreBackend
from credential_vault.infrastructure.db.metadata import credentials
from credential_vault.infrastructure.db.session import resolve_store_backend

DEFAULT_STORE_TIMEOUT_SECONDS = 5.0
logger = logging.getLogger(__name__)

_RECORD_COLUMNS = (
    credentials.c.identity,
    credentials.c.display_name,
    credentials.c.secret_hash,
    credentials.c.contact_email,
    credentials.c.contact_phone,
    credentials.c.created_at,
)


def _is_duplicate_key_error(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "unique" in message or "duplicate key" in message


def _to_credential_record(row: RowMapping) -> CredentialRecord:
    return CredentialRecord(
        identity=cast(str, row["identity"]),
        display_name=cast(str, row["display_name"]),
        secret_hash=cast(str, row["secret_hash"]),
        contact_email=cast(str, row["contact_email"]),
        contact_phone=cast("str | None", row["contact_phone"]),
        created_at=cast("datetime | None", row["created_at"]),
    )


class SqlAlchemyCredentialStore(CredentialStorePort):
    """Credential store backed by SQLAlchemy async sessions.

    The same adapter serves embedded SQLite files and networked PostgreSQL; the
    session factory's engine decides which. Each operation opens its own session
    and is bounded by ``timeout_seconds``.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        timeout_seconds: float | None = DEFAULT_STORE_TIMEOUT_SECONDS,
    ) -> None:
        self._session_factory = session_factory
        self._timeout_seconds = timeout_seconds
        self._schema_ready = False

    @property
    def backend(self) -> StoreBackend:
        engine = self._session_factory.kw["bind"]
        return resolve_store_backend(engine.url)

    async def ensure_schema(self) -> None:
        """Create the credentials table when absent."""

        if self._schema_ready:
            return

        async with self._translate_errors("ensure_schema"):
            async with self._session_factory() as session:
                try:
                    await session.execute(CreateTable(credentials, if_not_exists=True))
                    await session.commit()
                except IntegrityError:
                    # Postgres reports a concurrent CREATE TABLE as a catalog conflict.
                    await session.rollback()
                    logger.info("credential_schema_created_concurrently")

        self._schema_ready = True
        logger.info("credential_schema_ready backend=%s", self.backend.value)

    async def find_by_identity_or_email(
        self,
        *,
        identity: str,
        email: str,
    ) -> CredentialRecord | None:
        """Return the first record whose identity or contact email matches."""

        statement = (
            sa.select(*_RECORD_COLUMNS)
            .where(
                sa.or_(
                    credentials.c.identity == identity,
                    credentials.c.contact_email == email,
                )
            )
            .limit(1)
        )
        return await self._fetch_one("find_by_identity_or_email", statement)

    async def find_by_identity(self, *, identity: str) -> CredentialRecord | None:
        """Return record keyed by identity or None."""

        statement = sa.select(*_RECORD_COLUMNS).where(credentials.c.identity == identity).limit(1)
        return await self._fetch_one("find_by_identity", statement)

    async def insert(self, payload: CredentialCreateInput) -> CredentialRecord:
        """Insert one credential row and return the persisted record."""

        statement = (
            sa.insert(credentials)
            .values(
                identity=payload.identity,
                display_name=payload.display_name,
                secret_hash=payload.secret_hash,
                contact_email=payload.contact_email,
                contact_phone=payload.contact_phone,
            )
            .returning(*_RECORD_COLUMNS)
        )

        async with self._translate_errors("insert"):
            async with self._session_factory() as session:
                try:
                    result = await session.execute(statement)
                    row = result.mappings().one()
                    await session.commit()
                except IntegrityError as error:
                    await session.rollback()
                    if _is_duplicate_key_error(error):
                        raise DuplicateKeyError("identity or email already exists") from error
                    raise

        return _to_credential_record(row)

    async def ping(self) -> None:
        """Round-trip a trivial query against the store."""

        async with self._translate_errors("ping"):
            async with self._session_factory() as session:
                await session.execute(sa.select(sa.literal(1)))

    async def _fetch_one(
        self,
        operation: str,
        statement: sa.Select[tuple[object, ...]],
    ) -> CredentialRecord | None:
        async with self._translate_errors(operation):
            async with self._session_factory() as session:
                result = await session.execute(statement)
                row = result.mappings().first()

        if row is None:
            return None
        return _to_credential_record(row)

    @asynccontextmanager
    async def _translate_errors(self, operation: str) -> AsyncIterator[None]:
        """Bound one store operation and map infrastructure failures."""

        try:
            async with asyncio.timeout(self._timeout_seconds):
                yield
        except IntegrityError:
            raise
        except (DBAPIError, PoolTimeoutError, TimeoutError, OSError) as error:
            logger.warning(
                "credential_store_unavailable operation=%s error_type=%s",
                operation,
                type(error).__name__,
            )
            raise StoreUnavailableError(operation=operation) from error
