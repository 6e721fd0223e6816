"""Application configuration loaded from environment variables.

Settings for the database, password hashing, email verification,
notification delivery, and profile picture storage. Uses pydantic-settings
for validation and .env file support.
"""

from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
_INSECURE_DEFAULT_PASSWORD = "webapp_dev_password"  # nosec B105

# bcrypt accepts cost factors 4..31
_MIN_BCRYPT_ROUNDS = 4
_MAX_BCRYPT_ROUNDS = 31


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "webapp"
    database_user: str = "webapp_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD
    # Full SQLAlchemy URL; takes precedence over the individual parts above
    database_url_override: str = ""

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    # Credentials
    bcrypt_rounds: int = 12

    # Email verification
    app_base_url: str = "http://localhost:8080"
    verification_token_ttl_seconds: int = 120
    verification_topic: str = "email-verification"
    # Seconds between expired-token purges; 0 disables the background purge
    verification_purge_interval_seconds: int = 600

    # Notification delivery (empty endpoint = log only)
    notification_endpoint: str = ""
    notification_timeout: float = 10.0

    # Profile pictures
    object_store_bucket: str = "webapp-profile-pics"
    object_store_public_url: str = ""
    media_max_upload_mb: int = 5
    # False restores the older "delete before re-upload" policy
    media_replace_existing: bool = True

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def media_public_base_url(self) -> str:
        """URL prefix under which stored object keys are addressable."""
        if self.object_store_public_url:
            return self.object_store_public_url.rstrip("/")
        return f"https://{self.object_store_bucket}.s3.amazonaws.com"

    @model_validator(mode="after")
    def check_settings(self) -> "Settings":
        """Validate cross-field invariants and production security.

        Checks:
        - bcrypt cost factor within the range bcrypt accepts
        - Token TTL and upload limit must be positive
        - Database password must not be the default in production
        """
        if not _MIN_BCRYPT_ROUNDS <= self.bcrypt_rounds <= _MAX_BCRYPT_ROUNDS:
            msg = (
                f"BCRYPT_ROUNDS must be between {_MIN_BCRYPT_ROUNDS} and "
                f"{_MAX_BCRYPT_ROUNDS}. Got: {self.bcrypt_rounds}"
            )
            raise ValueError(msg)

        if self.verification_token_ttl_seconds <= 0:
            msg = (
                "VERIFICATION_TOKEN_TTL_SECONDS must be positive. "
                f"Got: {self.verification_token_ttl_seconds}"
            )
            raise ValueError(msg)

        if self.verification_purge_interval_seconds < 0:
            msg = (
                "VERIFICATION_PURGE_INTERVAL_SECONDS must not be negative. "
                f"Got: {self.verification_purge_interval_seconds}"
            )
            raise ValueError(msg)

        if self.media_max_upload_mb <= 0:
            msg = f"MEDIA_MAX_UPLOAD_MB must be positive. Got: {self.media_max_upload_mb}"
            raise ValueError(msg)

        if (
            self.environment == "production"
            and not self.database_url_override
            and self.database_password == _INSECURE_DEFAULT_PASSWORD
        ):
            msg = (
                "Cannot use default database password in production. "
                "Set DATABASE_PASSWORD environment variable to a secure value."
            )
            raise ValueError(msg)

        return self


settings = Settings()
