"""Async SQLAlchemy engine and session factory helpers."""

from __future__ import annotations

from typing import Any, Literal

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from credential_vault.domain.store_backend import StoreBackend

SslMode = Literal["disable", "require", "verify-full"]


def resolve_store_backend(database_url: str | URL) -> StoreBackend:
    """Classify a SQLAlchemy URL as embedded file storage or a networked server."""

    if make_url(database_url).get_backend_name() == "sqlite":
        return StoreBackend.EMBEDDED
    return StoreBackend.NETWORKED


def create_store_engine(
    database_url: str,
    *,
    timeout_seconds: float | None = None,
    ssl_mode: SslMode | None = None,
) -> AsyncEngine:
    """Create an async engine tuned for the backend selected by the URL.

    Bound parameters are hidden from error text so secret digests never end up
    in exception messages.
    """

    url = make_url(database_url)
    connect_args: dict[str, Any] = {}
    engine_kwargs: dict[str, Any] = {"hide_parameters": True}

    if resolve_store_backend(database_url) is StoreBackend.EMBEDDED:
        if timeout_seconds is not None:
            connect_args["timeout"] = timeout_seconds
    else:
        engine_kwargs["pool_pre_ping"] = True
        if timeout_seconds is not None:
            engine_kwargs["pool_timeout"] = timeout_seconds
        if url.get_driver_name() == "asyncpg":
            if timeout_seconds is not None:
                connect_args["timeout"] = timeout_seconds
                connect_args["command_timeout"] = timeout_seconds
            if ssl_mode is not None:
                connect_args["ssl"] = ssl_mode

    return create_async_engine(url, connect_args=connect_args, **engine_kwargs)


def create_session_factory(
    database_url: str,
    *,
    timeout_seconds: float | None = None,
    ssl_mode: SslMode | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create a reusable async session factory for the provided database URL."""

    engine = create_store_engine(
        database_url,
        timeout_seconds=timeout_seconds,
        ssl_mode=ssl_mode,
    )
    return async_sessionmaker(engine, expire_on_commit=False)
