"""FastAPI router for credential registration, login, and store health endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from credential_vault.application.dto.credential_models import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    StoreHealthResponse,
)
from credential_vault.application.ports.credential_store_port import StoreUnavailableError
from credential_vault.application.services.credential_service import (
    CredentialService,
    CredentialValidationError,
    DuplicateIdentityError,
    InvalidCredentialError,
)

STORE_RETRY_AFTER_SECONDS = 5
logger = logging.getLogger(__name__)


def _store_unavailable(error: StoreUnavailableError) -> HTTPException:
    logger.warning("credential_api_store_unavailable operation=%s", error.operation)
    return HTTPException(
        status_code=503,
        detail="service temporarily unavailable",
        headers={"Retry-After": str(STORE_RETRY_AFTER_SECONDS)},
    )


def build_credential_router(
    *,
    credential_service: CredentialService,
    login_redirect_url: str | None = None,
) -> APIRouter:
    """Build router exposing credential endpoints under /api."""

    router = APIRouter(prefix="/api", tags=["credentials"])

    @router.get("", response_model=MessageResponse)
    async def liveness() -> MessageResponse:
        return MessageResponse(message="Auth API is working!")

    @router.get("/health", response_model=StoreHealthResponse)
    async def health() -> StoreHealthResponse:
        status = await credential_service.store_status()
        return StoreHealthResponse(message="Server is healthy!", backend=status.backend.value)

    @router.get("/db-check", response_model=StoreHealthResponse)
    async def db_check() -> StoreHealthResponse | JSONResponse:
        status = await credential_service.store_status()
        if not status.reachable:
            return JSONResponse(
                status_code=503,
                content={"message": "Database connection failed.", "backend": status.backend.value},
                headers={"Retry-After": str(STORE_RETRY_AFTER_SECONDS)},
            )
        return StoreHealthResponse(
            message="Database connection successful!",
            backend=status.backend.value,
        )

    @router.post("/register", status_code=201, response_model=MessageResponse)
    async def register(request: Request) -> MessageResponse:
        try:
            payload = RegisterRequest.model_validate_json(await request.body())
        except ValidationError as error:
            raise HTTPException(status_code=400, detail="malformed request body") from error

        try:
            await credential_service.register(
                identity=payload.identity,
                display_name=payload.display_name,
                secret=payload.secret,
                contact_email=payload.contact_email,
                contact_phone=payload.contact_phone,
            )
        except CredentialValidationError as error:
            raise HTTPException(
                status_code=400,
                detail="Please provide all required fields.",
            ) from error
        except DuplicateIdentityError as error:
            raise HTTPException(status_code=409, detail=str(error)) from error
        except StoreUnavailableError as error:
            raise _store_unavailable(error) from error

        return MessageResponse(message="Registration successful!")

    @router.post("/login", response_model=LoginResponse)
    async def login(request: Request) -> LoginResponse:
        try:
            payload = LoginRequest.model_validate_json(await request.body())
        except ValidationError as error:
            raise HTTPException(status_code=400, detail="malformed request body") from error

        try:
            await credential_service.verify(identity=payload.identity, secret=payload.secret)
        except CredentialValidationError as error:
            raise HTTPException(
                status_code=400,
                detail="Please provide both username and password.",
            ) from error
        except InvalidCredentialError as error:
            raise HTTPException(status_code=401, detail=str(error)) from error
        except StoreUnavailableError as error:
            raise _store_unavailable(error) from error

        return LoginResponse(message="Login successful!", redirect=login_redirect_url)

    return router
