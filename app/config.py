"""
Application configuration with Pydantic Settings for validation and type safety.
Supports environment-specific configurations and .env file loading.
"""

from enum import Enum
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Environment(str, Enum):
    """Application environment types"""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """
    Web client settings.
    Settings are loaded from environment variables or .env file.
    """

    # Application settings
    app_name: str = Field(default="ChirpyNosh", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT, description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, ge=1, le=65535, description="Server port")
    public_url: str = Field(
        default="http://localhost:3000",
        description="Externally visible origin, used for OAuth redirect URIs",
    )

    # Backend API
    api_base_url: str = Field(
        default="http://localhost:4000/api",
        description="Base URL of the ChirpyNosh REST API",
    )
    request_timeout_sec: float = Field(
        default=10.0, gt=0, description="Timeout for backend API calls"
    )

    # Auth cookies issued by the backend
    access_cookie_name: str = Field(default="accessToken")
    refresh_cookie_name: str = Field(default="refreshToken")
    cookie_secure: bool = Field(
        default=False, description="Mark forwarded auth cookies as Secure"
    )

    # Session (persisted auth store and signup wizard)
    session_secret_key: str = Field(
        default="chirpynosh-dev-session-secret",
        description="Secret used to sign the session cookie",
    )
    session_cookie_name: str = Field(default="chirpynosh_session")
    session_max_age_sec: int = Field(default=14 * 24 * 3600, ge=60)

    # Route gating
    auth_routes: list[str] = Field(default=["/login", "/signup"])
    protected_routes: list[str] = Field(
        default=["/dashboard", "/kyc", "/admin-dash"]
    )

    # Third parties
    google_client_id: Optional[str] = Field(
        default=None, description="Google OAuth client id; Google sign-in is off when unset"
    )
    cloudinary_cloud_name: str = Field(default="demo")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="Log format string",
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Validate and normalize environment value"""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @field_validator("api_base_url", "public_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.environment == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.environment == Environment.DEVELOPMENT

    def is_testing(self) -> bool:
        """Check if running in testing environment"""
        return self.environment == Environment.TESTING


# Global settings instance
settings = Settings()
