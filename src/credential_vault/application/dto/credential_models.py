"""Pydantic models for credential HTTP payloads."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class LenientModel(BaseModel):
    """Base model that ignores unknown fields.

    Required-field checks belong to the credential service, so every request
    field is optional here.
    """

    model_config = ConfigDict(extra="ignore")


class RegisterRequest(LenientModel):
    """Registration form contract."""

    identity: str | None = Field(default=None, validation_alias=AliasChoices("userId", "identity"))
    display_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("username", "display_name"),
    )
    secret: str | None = Field(default=None, validation_alias=AliasChoices("password", "secret"))
    contact_email: str | None = Field(
        default=None,
        validation_alias=AliasChoices("email", "contact_email"),
    )
    contact_phone: str | None = Field(
        default=None,
        validation_alias=AliasChoices("phone", "contact_phone"),
    )


class LoginRequest(LenientModel):
    """Login form contract; the login key is the registered identity."""

    identity: str | None = Field(
        default=None,
        validation_alias=AliasChoices("username", "userId", "identity"),
    )
    secret: str | None = Field(default=None, validation_alias=AliasChoices("password", "secret"))


class MessageResponse(BaseModel):
    """Plain acknowledgement body."""

    message: str


class LoginResponse(MessageResponse):
    """Successful login body."""

    redirect: str | None = None


class StoreHealthResponse(MessageResponse):
    """Health and connectivity body."""

    backend: str
