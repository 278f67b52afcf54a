"""Application settings loaded from environment variables.

Environment Configuration:
    GALERA_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: SQLAlchemy connection string (defaults to a local SQLite file)
    LOG_JSON: Emit JSON logs (true) or console-friendly logs (false)

Credential Configuration:
    REFRESH_TOKEN_TTL_S: Lifetime of a refresh token in seconds
    ACCESS_TOKEN_TTL_S: Lifetime of an access token in seconds
    PASSWORD_HASH_COST: bcrypt work factor (log2 rounds, 4-31)

Album / Content Configuration:
    SHARE_LINK_SLUG_LENGTH: Length of generated album and share-link slugs
    MAX_SLUG_RETRIES: Attempts before slug generation gives up (RetryExhausted)
    MAX_FOLDER_DEPTH: Deepest level a folder may sit below its owner's root
    BLOB_STORE_PATH: Root directory of the content-addressed blob store
"""

from datetime import timedelta
from enum import Enum
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables.
    Validation rules:
    - Access tokens must be shorter-lived than refresh tokens
    - bcrypt cost must stay within the range bcrypt accepts
    - SQLite databases are rejected in staging and prod
    """

    galera_env: Environment = Field(default=Environment.LOCAL, alias="GALERA_ENV")
    database_url: str = Field(default="sqlite:///galera.db", alias="DATABASE_URL")
    log_json: bool = Field(default=True, alias="LOG_JSON")

    # Token issuer
    refresh_token_ttl_s: int = Field(default=30 * 24 * 3600, ge=60, alias="REFRESH_TOKEN_TTL_S")
    access_token_ttl_s: int = Field(default=15 * 60, ge=1, alias="ACCESS_TOKEN_TTL_S")

    # Identity store
    password_hash_cost: int = Field(default=12, ge=4, le=31, alias="PASSWORD_HASH_COST")

    # Album graph / share links
    share_link_slug_length: int = Field(default=21, ge=8, le=64, alias="SHARE_LINK_SLUG_LENGTH")
    max_slug_retries: int = Field(default=5, ge=1, le=50, alias="MAX_SLUG_RETRIES")

    # Content index
    max_folder_depth: int = Field(default=64, ge=1, alias="MAX_FOLDER_DEPTH")
    blob_store_path: str = Field(default="./data/blobs", alias="BLOB_STORE_PATH")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @model_validator(mode="after")
    def validate_token_lifetimes(self) -> "Settings":
        """Ensure access tokens never outlive the refresh token that minted them."""
        if self.access_token_ttl_s >= self.refresh_token_ttl_s:
            raise ValueError(
                "ACCESS_TOKEN_TTL_S must be smaller than REFRESH_TOKEN_TTL_S "
                f"(got {self.access_token_ttl_s} >= {self.refresh_token_ttl_s})"
            )

        if self.galera_env in (Environment.STAGING, Environment.PROD):
            if self.database_url.startswith("sqlite"):
                raise ValueError(
                    "DATABASE_URL must point at a server database "
                    f"for GALERA_ENV={self.galera_env.value}"
                )

        return self

    @property
    def refresh_token_ttl(self) -> timedelta:
        return timedelta(seconds=self.refresh_token_ttl_s)

    @property
    def access_token_ttl(self) -> timedelta:
        return timedelta(seconds=self.access_token_ttl_s)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
