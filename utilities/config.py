"""
Configuration management using environment variables.
Handles database, crypto and logging settings with validation and defaults.
"""

import hashlib
from datetime import timedelta
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_SIGNING_SECRET_BYTES = 32


class SecurityConfig(BaseModel):
    """
    Immutable crypto configuration handed to the credential store and
    token service at construction time.

    The key/IV pair must stay stable for the lifetime of any stored record:
    changing either makes encrypted emails, names and refresh tokens unreadable.
    """

    model_config = ConfigDict(frozen=True)

    encryption_key: bytes = Field(..., description="AES-256 key")
    encryption_iv: bytes = Field(..., description="AES block-size IV")
    access_token_secret: str = Field(..., description="HS256 secret for access tokens")
    refresh_token_secret: str = Field(..., description="HS256 secret for refresh tokens")
    jwt_algorithm: str = Field(default="HS256")
    access_token_ttl: timedelta = Field(default=timedelta(seconds=15))
    refresh_token_ttl: timedelta = Field(default=timedelta(days=7))

    @field_validator("encryption_key")
    @classmethod
    def validate_key(cls, v: bytes) -> bytes:
        if len(v) not in (16, 24, 32):
            raise ValueError("encryption_key must be 16, 24 or 32 bytes")
        return v

    @field_validator("encryption_iv")
    @classmethod
    def validate_iv(cls, v: bytes) -> bytes:
        if len(v) != 16:
            raise ValueError("encryption_iv must be 16 bytes")
        return v


class LibraryConfig(BaseSettings):
    """
    Configuration class for the e-libro backend.
    Uses pydantic BaseSettings for environment variable management.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # MongoDB Configuration
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "e-libro"
    users_collection: str = "users"
    books_collection: str = "books"

    # Field encryption
    encryption_secret_key: str = "change-me-encryption-secret-for-local-development"
    encryption_iv: Optional[str] = None

    # JWT
    access_token_secret: str = "change-me-access-token-secret-for-local-development"
    refresh_token_secret: str = "change-me-refresh-token-secret-for-local-development"
    jwt_algorithm: str = "HS256"
    access_token_expire_seconds: int = 15
    refresh_token_expire_days: int = 7

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None

    debug: bool = False

    @field_validator("mongodb_url")
    @classmethod
    def validate_mongodb_url(cls, v: str) -> str:
        if not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError("mongodb_url must start with mongodb:// or mongodb+srv://")
        return v

    @field_validator("encryption_secret_key", "access_token_secret", "refresh_token_secret")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("secrets must be set and non-empty")
        return v

    @field_validator("access_token_secret", "refresh_token_secret")
    @classmethod
    def validate_signing_secret_length(cls, v: str) -> str:
        # PyJWT flags HS256 keys shorter than the SHA-256 digest as insecure
        if len(v.encode("utf-8")) < MIN_SIGNING_SECRET_BYTES:
            raise ValueError(f"token secrets must be at least {MIN_SIGNING_SECRET_BYTES} bytes")
        return v

    @field_validator("encryption_iv")
    @classmethod
    def validate_encryption_iv(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        try:
            raw = bytes.fromhex(v.strip())
        except ValueError:
            raise ValueError("encryption_iv must be hex encoded")
        if len(raw) != 16:
            raise ValueError("encryption_iv must be 32 hex characters (16 bytes)")
        return v.strip()

    @field_validator("access_token_expire_seconds")
    @classmethod
    def validate_access_ttl(cls, v: int) -> int:
        if v < 1 or v > 86400:
            raise ValueError("access_token_expire_seconds must be between 1 and 86400")
        return v

    @field_validator("refresh_token_expire_days")
    @classmethod
    def validate_refresh_ttl(cls, v: int) -> int:
        if v < 1 or v > 365:
            raise ValueError("refresh_token_expire_days must be between 1 and 365")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Ensure log format is valid."""
        valid_formats = ["json", "console"]
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {valid_formats}")
        return v.lower()

    @model_validator(mode="after")
    def validate_distinct_secrets(self) -> "LibraryConfig":
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("access_token_secret and refresh_token_secret must differ")
        return self

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def security(self) -> SecurityConfig:
        """
        Build the crypto configuration.

        The AES key is the SHA-256 digest of the secret seed; when no explicit
        IV is configured it is the first 16 bytes of SHA-256 over the seed
        prefixed with ``iv:``, so both stay stable across restarts.
        """
        seed = self.encryption_secret_key.encode("utf-8")
        if self.encryption_iv:
            iv = bytes.fromhex(self.encryption_iv)
        else:
            iv = hashlib.sha256(b"iv:" + seed).digest()[:16]

        return SecurityConfig(
            encryption_key=hashlib.sha256(seed).digest(),
            encryption_iv=iv,
            access_token_secret=self.access_token_secret,
            refresh_token_secret=self.refresh_token_secret,
            jwt_algorithm=self.jwt_algorithm,
            access_token_ttl=timedelta(seconds=self.access_token_expire_seconds),
            refresh_token_ttl=timedelta(days=self.refresh_token_expire_days),
        )


# Global configuration instance
config = LibraryConfig()
