"""
Configuration management for the storefront CMS service
"""
from dataclasses import dataclass
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service configuration loaded from environment variables"""

    # Server Configuration
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./storefront.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Authentication
    AUTH_MODE: Literal["federated", "native"] = "federated"
    IDP_JWKS_URL: Optional[str] = None
    JWT_SECRET: Optional[str] = None
    JWT_EXPIRE_MINUTES: int = 60 * 24 * 7
    ADMIN_BOOTSTRAP_SECRET: Optional[str] = None

    # Object Store
    S3_REGION: Optional[str] = None
    S3_BUCKET: Optional[str] = None
    S3_ACCESS_KEY_ID: Optional[str] = None
    S3_SECRET_ACCESS_KEY: Optional[str] = None
    S3_PUBLIC_BASE: Optional[str] = None
    S3_ENDPOINT_URL: Optional[str] = None
    S3_DELETE_TIMEOUT_MS: int = 3000
    S3_DELETE_MAX_ATTEMPTS: int = 3
    S3_DELETE_BACKOFF_MS: int = 200
    PRESIGN_EXPIRES_SECONDS: int = 300

    # Content lifecycle policies
    HERO_BANNER_DELETE_MODE: Literal["hard", "soft"] = "hard"
    SPECIAL_OFFER_DELETE_MODE: Literal["hard", "soft"] = "soft"
    LAPTOP_OFFER_DELETE_MODE: Literal["hard", "soft"] = "hard"
    SPECIAL_OFFER_ROUNDING: Literal["floor", "round"] = "floor"
    LAPTOP_OFFER_ROUNDING: Literal["floor", "round"] = "floor"
    DISCOUNT_TOLERANCE_PERCENT: int = 1

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


class StorageConfigError(RuntimeError):
    """Raised when object-store settings are incomplete."""


@dataclass(frozen=True)
class StorageSettings:
    """
    Validated object-store configuration.

    Built once at startup and handed to the object store client and the
    asset manager, so no component discovers configuration lazily.
    """
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str
    public_base: str
    endpoint_url: Optional[str] = None
    delete_timeout_ms: int = 3000
    delete_max_attempts: int = 3
    delete_backoff_ms: int = 200
    presign_expires_seconds: int = 300

    @classmethod
    def from_settings(cls, source: Settings) -> "StorageSettings":
        """
        Build storage settings, failing on the first missing variable.

        Raises:
            StorageConfigError: If a required S3_* variable is unset or blank
        """
        required = {
            "S3_REGION": source.S3_REGION,
            "S3_BUCKET": source.S3_BUCKET,
            "S3_ACCESS_KEY_ID": source.S3_ACCESS_KEY_ID,
            "S3_SECRET_ACCESS_KEY": source.S3_SECRET_ACCESS_KEY,
            "S3_PUBLIC_BASE": source.S3_PUBLIC_BASE,
        }
        missing = [name for name, value in required.items() if not value or not value.strip()]
        if missing:
            raise StorageConfigError(f"Missing environment variable: {', '.join(missing)}")

        return cls(
            region=source.S3_REGION,
            bucket=source.S3_BUCKET,
            access_key_id=source.S3_ACCESS_KEY_ID,
            secret_access_key=source.S3_SECRET_ACCESS_KEY,
            public_base=source.S3_PUBLIC_BASE.rstrip("/"),
            endpoint_url=source.S3_ENDPOINT_URL or None,
            delete_timeout_ms=source.S3_DELETE_TIMEOUT_MS,
            delete_max_attempts=source.S3_DELETE_MAX_ATTEMPTS,
            delete_backoff_ms=source.S3_DELETE_BACKOFF_MS,
            presign_expires_seconds=source.PRESIGN_EXPIRES_SECONDS,
        )


# Global settings instance
settings = Settings()
