"""
Configuration and settings for the backup scheduler service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EXECUTOR_FUNCTION_PATH = "/functions/v1/google-drive-backup"
DEFAULT_EXECUTOR_TIMEOUT_SECONDS = 300.0


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service and worker."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Database (the Postgres instance behind Supabase in production)
    database_url: Optional[str] = Field(default=None)

    # Supabase project; the service role key authenticates executor calls
    supabase_url: Optional[str] = Field(default=None)
    supabase_service_role_key: Optional[str] = Field(default=None)

    # Backup executor
    backup_executor_url: Optional[str] = Field(default=None)
    backup_executor_timeout_seconds: float = Field(
        default=DEFAULT_EXECUTOR_TIMEOUT_SECONDS, gt=0
    )

    # Scheduler
    scheduler_batch_size: Optional[int] = Field(default=None, ge=1)
    stale_job_timeout_seconds: float = Field(default=0.0, ge=0)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    def resolved_executor_url(self) -> Optional[str]:
        """Explicit executor URL, else the backup edge function of the project."""
        if self.backup_executor_url:
            return self.backup_executor_url
        if self.supabase_url:
            return self.supabase_url.rstrip("/") + EXECUTOR_FUNCTION_PATH
        return None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
