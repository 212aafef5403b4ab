"""Runtime settings loaded from environment variables."""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

NonEmptyStr = Annotated[str, Field(min_length=1)]
PositiveFloat = Annotated[float, Field(gt=0.0)]
BcryptRounds = Annotated[int, Field(ge=4, le=31)]

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./credentials.db"


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: NonEmptyStr = Field(
        default=DEFAULT_DATABASE_URL,
        validation_alias="DATABASE_URL",
    )
    database_ssl_mode: Literal["disable", "require", "verify-full"] | None = Field(
        default=None,
        validation_alias="DATABASE_SSL_MODE",
    )
    store_timeout_seconds: PositiveFloat = Field(
        default=5.0,
        validation_alias="STORE_TIMEOUT_SECONDS",
    )
    bcrypt_rounds: BcryptRounds = Field(default=10, validation_alias="BCRYPT_ROUNDS")
    ensure_schema_on_startup: bool = Field(
        default=True,
        validation_alias="ENSURE_SCHEMA_ON_STARTUP",
    )
    login_redirect_url: HttpUrl | None = Field(
        default=None,
        validation_alias="LOGIN_REDIRECT_URL",
    )
    cors_allow_origins: str = Field(default="*", validation_alias="CORS_ALLOW_ORIGINS")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    def cors_origins(self) -> list[str]:
        """Return comma-separated CORS origins; an empty value disables CORS."""

        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()
