"""Storage backend kinds supported by the credential store."""

from __future__ import annotations

from enum import StrEnum


class StoreBackend(StrEnum):
    """Supported credential storage media."""

    EMBEDDED = "embedded"
    NETWORKED = "networked"
