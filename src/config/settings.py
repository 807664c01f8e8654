"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables (or a .env file)
once per process. Storage settings are deliberately optional: a
missing credential or endpoint doesn't stop the app from starting,
it makes image operations fail at call time instead.

Mock mode enables local development without object storage.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..infrastructure.storage.client import StorageConfig


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like api_keys), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Project Image Store API"
    api_version: str = "v1"
    api_keys: str = Field(
        default="dev-key-1",
        description="Comma-separated API keys accepted in the X-API-Key header."
    )

    # R2/S3 Storage Configuration
    r2_account_id: str = Field(
        default="",
        description="Cloudflare account ID for R2"
    )
    r2_access_key_id: str = Field(
        default="",
        description="R2 access key ID"
    )
    r2_secret_access_key: str = Field(
        default="",
        description="R2 secret access key"
    )
    r2_bucket_name: str = Field(
        default="",
        description="Bucket holding project images"
    )
    r2_endpoint_url: Optional[str] = Field(
        default=None,
        description="S3 endpoint URL. Auto-constructed from account_id if not provided."
    )
    r2_region: str = Field(
        default="auto",
        description="Signing region. R2 uses 'auto'."
    )
    r2_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real R2. Enables local dev without object storage."
    )
    r2_max_attempts: int = Field(
        default=1,
        ge=1,
        le=10,
        description="Total attempts per storage call, including the first. 1 disables retries."
    )
    r2_connect_timeout: float = Field(
        default=10.0,
        description="Connect timeout for storage calls, in seconds"
    )
    r2_read_timeout: float = Field(
        default=30.0,
        description="Read timeout for storage calls, in seconds"
    )

    # Image behavior
    image_key_prefix: str = Field(
        default="projects",
        description="Collection prefix for newly uploaded image keys"
    )
    signed_url_expiry_seconds: int = Field(
        default=3600,
        gt=0,
        le=604800,  # S3 v4 signatures max out at 7 days
        description="Lifetime of signed read URLs returned on upload"
    )
    max_upload_size_mb: int = Field(
        default=10,
        description="Maximum image upload size in MB"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def api_keys_list(self) -> list[str]:
        """Parse comma-separated API keys into a list."""
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def r2_endpoint(self) -> Optional[str]:
        """
        Resolve the storage endpoint.

        An explicit R2_ENDPOINT_URL wins. Otherwise R2 endpoints follow
        https://{account_id}.r2.cloudflarestorage.com. None when neither
        is set.
        """
        if self.r2_endpoint_url:
            return self.r2_endpoint_url
        if self.r2_account_id:
            return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"
        return None

    def storage_config(self) -> StorageConfig:
        """Build the storage client configuration from these settings."""
        return StorageConfig(
            access_key_id=self.r2_access_key_id,
            secret_access_key=self.r2_secret_access_key,
            bucket_name=self.r2_bucket_name,
            endpoint_url=self.r2_endpoint,
            region=self.r2_region,
            max_attempts=self.r2_max_attempts,
            connect_timeout=self.r2_connect_timeout,
            read_timeout=self.r2_read_timeout,
            key_prefix=self.image_key_prefix,
            signed_url_expiry=self.signed_url_expiry_seconds,
        )

    def validate_required_fields(self) -> list[str]:
        """
        Return the environment variables that are required but missing.

        Nothing is required in mock mode.
        """
        missing = []

        if self.r2_mock_mode:
            return missing

        if not self.r2_endpoint:
            missing.append("R2_ENDPOINT_URL or R2_ACCOUNT_ID")
        if not self.r2_access_key_id:
            missing.append("R2_ACCESS_KEY_ID")
        if not self.r2_secret_access_key:
            missing.append("R2_SECRET_ACCESS_KEY")
        if not self.r2_bucket_name:
            missing.append("R2_BUCKET_NAME")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once per process. For tests, call
    get_settings.cache_clear() to reset.
    """
    return Settings()
