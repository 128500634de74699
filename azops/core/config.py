"""Tool configuration using Pydantic Settings."""

import os
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
MAX_ATTEMPTS_LIMIT = 20


def get_env_file() -> str:
    """
    Determine which .env file to load based on APP_ENV.

    Returns:
        Path to the .env file to load
    """
    app_env = os.getenv("APP_ENV", "development")
    base_dir = Path.cwd()

    if app_env == "test":
        env_file = base_dir / ".env.test"
        if env_file.exists():
            return str(env_file)

    if app_env == "production":
        env_file = base_dir / ".env.production"
        if env_file.exists():
            return str(env_file)

    return str(base_dir / ".env")


class Settings(BaseSettings):
    """Settings loaded from environment variables (and the selected .env file)."""

    model_config = SettingsConfigDict(
        env_file=get_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "azops"
    APP_ENV: str = "development"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Azure identity (service principal). Secrets are only read from the environment.
    AZURE_SUBSCRIPTION_ID: str = ""
    AZURE_TENANT_ID: str = ""
    AZURE_CLIENT_ID: str = ""
    AZURE_CLIENT_SECRET: str = ""
    AZURE_CLIENT_CERTIFICATE_PATH: str = ""

    # VM lifecycle polling
    VM_MAX_ATTEMPTS: int = 5
    VM_RETRY_DELAY_SECONDS: float = 60.0
    VM_START_MAX_WORKERS: int = 8  # Start fans out one job per VM
    VM_STOP_MAX_WORKERS: int = 1  # Stop runs sequentially unless overridden

    # Error Tracking (Sentry)
    SENTRY_DSN: str = ""
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_TRACES_SAMPLE_RATE: float = 0.0

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Upper-case the level and reject names the logging module does not know."""
        level = str(v).strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL '{v}' is not valid. Use one of: {', '.join(LOG_LEVELS)}.")
        return level

    @field_validator("VM_MAX_ATTEMPTS")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        """Keep the retry ceiling bounded."""
        if not 1 <= v <= MAX_ATTEMPTS_LIMIT:
            raise ValueError(f"VM_MAX_ATTEMPTS must be between 1 and {MAX_ATTEMPTS_LIMIT}, got {v}")
        return v

    @field_validator("VM_RETRY_DELAY_SECONDS")
    @classmethod
    def validate_retry_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"VM_RETRY_DELAY_SECONDS cannot be negative, got {v}")
        return v

    @field_validator("VM_START_MAX_WORKERS", "VM_STOP_MAX_WORKERS")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Worker count must be at least 1, got {v}")
        return v

    @field_validator("SENTRY_TRACES_SAMPLE_RATE")
    @classmethod
    def validate_sample_rate(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"SENTRY_TRACES_SAMPLE_RATE must be between 0.0 and 1.0, got {v}")
        return v


# Create global settings instance
settings = Settings()
