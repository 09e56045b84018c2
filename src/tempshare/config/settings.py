"""Application settings loaded from environment variables."""

from enum import Enum
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class BlobBackend(str, Enum):
    """Supported blob storage backends."""

    LOCAL = "local"
    SUPABASE = "supabase"
    MEMORY = "memory"


class QuotaPolicySettings(BaseModel):
    """Tunable parameters for one quota tier."""

    window_ms: int
    """Length of the counting window in milliseconds."""

    max: int
    """Requests admitted per window."""

    delay_after: int | None = None
    """Requests served at full speed before graduated delay starts."""

    base_delay_ms: int = 0
    """Delay added per request beyond delay_after."""

    max_delay_ms: int = 0
    """Upper bound on the graduated delay."""

    skip_successful: bool = False
    """Do not count requests that end with a status below 400."""

    skip_failed: bool = False
    """Do not count requests that end with a status of 400 or above."""

    message: str = "Too many requests from this device, please try again later."


class QuotaSettings(BaseModel):
    """Quota tiers applied to endpoint classes.

    Every request is counted against the global tier in addition to the
    tier of its endpoint class.
    """

    upload: QuotaPolicySettings = QuotaPolicySettings(
        window_ms=15 * 60 * 1000,
        max=10,
        delay_after=3,
        base_delay_ms=1000,
        max_delay_ms=30000,
        skip_failed=True,
        message="Upload rate limit exceeded. You can upload 10 files per 15 minutes.",
    )
    download: QuotaPolicySettings = QuotaPolicySettings(
        window_ms=15 * 60 * 1000,
        max=100,
        skip_successful=True,
        message="Download rate limit exceeded. You can download 100 files per 15 minutes.",
    )
    listing: QuotaPolicySettings = QuotaPolicySettings(
        window_ms=15 * 60 * 1000,
        max=200,
        skip_successful=True,
        message="API rate limit exceeded. You can make 200 requests per 15 minutes.",
    )
    admin: QuotaPolicySettings = QuotaPolicySettings(
        window_ms=60 * 60 * 1000,
        max=10,
        message="Admin operation rate limit exceeded. You can perform 10 operations per hour.",
    )
    health: QuotaPolicySettings = QuotaPolicySettings(
        window_ms=60 * 1000,
        max=60,
        skip_successful=True,
        skip_failed=True,
        message="Health check rate limit exceeded.",
    )
    global_ceiling: QuotaPolicySettings = QuotaPolicySettings(
        window_ms=15 * 60 * 1000,
        max=500,
        message="Global rate limit exceeded. Please reduce your request frequency.",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Configuration
    ENVIRONMENT: Literal["development", "test", "production"] = "development"
    DEBUG: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./tempshare.db"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10

    # Share lifecycle
    SHARE_TTL_SECONDS: int = 3 * 60 * 60
    MAX_TITLE_LENGTH: int = 100
    MAX_UPLOAD_BYTES: int = 50 * 1024 * 1024
    TEXT_PREVIEW_LENGTH: int = 100
    PASSWORD_HASH_ITERATIONS: int = 600_000

    # Reaper
    REAPER_INTERVAL_MINUTES: int = 60
    REAPER_BATCH_SIZE: int = 100
    ENABLE_SCHEDULED_CLEANUP: bool = True

    # Blob storage
    BLOB_BACKEND: BlobBackend = BlobBackend.LOCAL
    LOCAL_BLOB_DIR: str = "./uploads"
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: SecretStr | None = None
    SUPABASE_ANON_KEY: SecretStr | None = None
    SUPABASE_STORAGE_BUCKET: str = "uploads"

    # Client identification
    TRUST_PROXY_HEADERS: bool = True
    TRUSTED_PROXIES: list[str] = []

    # Quotas
    RATE_LIMIT_ENABLED: bool = True
    quota: QuotaSettings = QuotaSettings()

    def get_supabase_key(self) -> SecretStr | None:
        """Get the Supabase key, preferring the service role key."""
        return self.SUPABASE_SERVICE_ROLE_KEY or self.SUPABASE_ANON_KEY

    @property
    def reaper_interval_seconds(self) -> int:
        """Reaper interval converted to seconds."""
        return self.REAPER_INTERVAL_MINUTES * 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
