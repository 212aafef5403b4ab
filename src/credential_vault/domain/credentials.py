"""Shared normalization helpers for credential inputs."""

from __future__ import annotations

# bcrypt only consumes the first 72 bytes of a secret.
MAX_SECRET_BYTES = 72


def normalize_identity(*, identity: str) -> str:
    """Trim one identity and reject blank values."""

    normalized = identity.strip()
    if not normalized:
        raise ValueError("identity cannot be blank")
    return normalized


def normalize_display_name(*, display_name: str) -> str:
    """Trim one display name and reject blank values."""

    normalized = display_name.strip()
    if not normalized:
        raise ValueError("display_name cannot be blank")
    return normalized


def normalize_contact_email(*, email: str) -> str:
    """Normalize one contact email and reject blank values."""

    normalized = email.strip().lower()
    if not normalized:
        raise ValueError("contact_email cannot be blank")
    return normalized


def normalize_contact_phone(*, phone: str | None) -> str | None:
    """Trim optional phone number, collapsing blank values to None."""

    if phone is None:
        return None
    normalized = phone.strip()
    return normalized or None


def require_secret(*, secret: str) -> str:
    """Reject blank or over-long secrets without altering the raw value."""

    if not secret.strip():
        raise ValueError("secret cannot be blank")
    if len(secret.encode("utf-8")) > MAX_SECRET_BYTES:
        raise ValueError(f"secret cannot exceed {MAX_SECRET_BYTES} bytes")
    return secret
