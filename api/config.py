"""
API configuration settings.
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "e-libro API"
    api_version: str = "1.0.0"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8083
    debug: bool = False

    # Refresh token cookie (browser clients)
    refresh_cookie_name: str = "jwt"
    refresh_cookie_max_age: int = 24 * 60 * 60  # seconds, independent of the token's own expiry
    refresh_cookie_secure: bool = True
    refresh_cookie_samesite: str = "strict"

    # Refresh token header (mobile clients)
    refresh_header_name: str = "x-refresh-token"

    # Pagination
    default_page_size: int = 20
    max_page_size: int = 100

    # CORS Settings
    cors_origins: List[str] = ["http://localhost:5173"]
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]
    cors_allow_headers: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


# Global config instance
config = APIConfig()
