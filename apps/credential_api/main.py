"""credential-api entrypoint and HTTP route wiring."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from credential_vault.application.ports.credential_store_port import (
    CredentialStorePort,
    StoreUnavailableError,
)
from credential_vault.application.services.credential_service import CredentialService
from credential_vault.config.settings import Settings, load_settings
from credential_vault.infrastructure.db.credential_store import SqlAlchemyCredentialStore
from credential_vault.infrastructure.db.session import create_store_engine
from credential_vault.infrastructure.http.credential_router import build_credential_router
from credential_vault.infrastructure.logging import configure_logging
from credential_vault.infrastructure.security.password_hasher import BcryptPasswordHasher

CREDENTIAL_API_HOST = "0.0.0.0"
CREDENTIAL_API_PORT = 3000
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialRuntime:
    """Store, service, and owned engine for one API process."""

    store: CredentialStorePort
    service: CredentialService
    engine: AsyncEngine | None


def build_credential_runtime(settings: Settings) -> CredentialRuntime:
    """Build credential service with the store backend selected by DATABASE_URL."""

    engine = create_store_engine(
        settings.database_url,
        timeout_seconds=settings.store_timeout_seconds,
        ssl_mode=settings.database_ssl_mode,
    )
    store = SqlAlchemyCredentialStore(
        async_sessionmaker(engine, expire_on_commit=False),
        timeout_seconds=settings.store_timeout_seconds,
    )
    service = CredentialService(
        store=store,
        password_hasher=BcryptPasswordHasher(rounds=settings.bcrypt_rounds),
    )
    return CredentialRuntime(store=store, service=service, engine=engine)


def create_app(
    *,
    credential_service: CredentialService | None = None,
    store: CredentialStorePort | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create FastAPI app for credential registration and login routes.

    Passing ``credential_service`` and ``store`` skips engine construction; the
    caller keeps ownership of their resources. Passing only one of them is an
    error, since the lifespan provisions schema through the store.
    """

    if settings is None:
        settings = load_settings()
    configure_logging(level=settings.log_level)

    if (credential_service is None) != (store is None):
        raise ValueError("pass credential_service and store together, or neither")
    if credential_service is None or store is None:
        runtime = build_credential_runtime(settings)
    else:
        runtime = CredentialRuntime(store=store, service=credential_service, engine=None)

    ensure_schema_on_startup = settings.ensure_schema_on_startup

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info("credential_api_starting backend=%s", runtime.store.backend.value)
        if ensure_schema_on_startup:
            try:
                await runtime.store.ensure_schema()
            except StoreUnavailableError:
                logger.warning("credential_api_schema_provisioning_deferred")
        try:
            yield
        finally:
            if runtime.engine is not None:
                await runtime.engine.dispose()

    redirect_url = settings.login_redirect_url
    app = FastAPI(lifespan=lifespan)
    cors_origins = settings.cors_origins()
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )
    app.include_router(
        build_credential_router(
            credential_service=runtime.service,
            login_redirect_url=str(redirect_url) if redirect_url is not None else None,
        )
    )
    return app


def run_asgi_server(*, host: str = CREDENTIAL_API_HOST, port: int = CREDENTIAL_API_PORT) -> None:
    """Run credential-api as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.credential_api.main:create_app",
        host=host,
        port=port,
        factory=True,
    )


def main() -> None:
    """Run credential-api runtime process."""

    run_asgi_server()


if __name__ == "__main__":
    main()
