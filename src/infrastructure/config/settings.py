from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "PracticeFlow"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = ""  # Loaded from environment, validated in model_validator
    database_echo: bool = False

    # CORS - comma-separated list of allowed origins
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Tenant / actor resolution
    tenant_header_name: str = "X-Tenant-ID"
    user_header_name: str = "X-User-ID"

    # Workflow automation
    workflow_action_timeout_seconds: float = 30.0  # Upper bound per action handler call
    workflow_webhook_timeout_seconds: float = 10.0  # HTTP timeout for call_webhook
    workflow_background_dispatch: bool = True  # Run emitted events off the request path
    workflow_log_retention_days: int = 90  # Used by scripts/purge_workflow_logs.py
    workflow_log_page_size: int = 50

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Validate required and workflow configuration"""
        if not self.database_url:
            raise ValueError("DATABASE_URL is required. Set in environment or .env file.")

        if self.workflow_action_timeout_seconds <= 0:
            raise ValueError("workflow_action_timeout_seconds must be positive")
        if self.workflow_webhook_timeout_seconds <= 0:
            raise ValueError("workflow_webhook_timeout_seconds must be positive")
        if self.workflow_log_retention_days < 1:
            raise ValueError("workflow_log_retention_days must be at least 1")
        if self.workflow_log_page_size < 1:
            raise ValueError("workflow_log_page_size must be at least 1")
        return self

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="allow", case_sensitive=False
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
