"""
Application configuration using Pydantic Settings.
All environment variables are loaded here with sensible defaults.
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    environment: str = "dev"  # dev | test | production
    log_level: str = "INFO"

    # Storage backend: "r2" (S3-compatible bucket) or "memory" (local dev/tests)
    storage_backend: str = "r2"

    # Cloudflare R2 / S3-compatible storage
    r2_endpoint: Optional[str] = None  # e.g., https://<account_id>.r2.cloudflarestorage.com
    r2_bucket: str = "filegate"
    r2_access_key: Optional[str] = None
    r2_secret_key: Optional[str] = None
    r2_region: str = "auto"  # R2 uses "auto" for region
    r2_prefix: str = ""  # Optional key namespace inside the bucket
    r2_max_attempts: int = 3

    # Gateway behaviour
    list_limit: int = Field(1000, ge=1, le=1000)
    read_chunk_size: int = Field(64 * 1024, ge=1)
    upload_part_size: int = Field(8 * 1024 * 1024, ge=5 * 1024 * 1024)  # S3 minimum part size
    upload_concurrency: int = Field(4, ge=1)  # Parallel part uploads (and parts buffered) per request
    public_base_url: Optional[str] = None  # Overrides request origin in retrieval URLs

    # HTTP
    cors_origins: List[str] = ["*"]
    metrics_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def resolved_storage_backend(self) -> str:
        """Storage backend actually used; the test environment never talks to R2."""
        if self.environment == "test":
            return "memory"
        return self.storage_backend.lower()


# Global settings instance
settings = Settings()
