"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Settings loaded from ``EBDEPLOY_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="EBDEPLOY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Project file
    project_file: str = ".yo-rc.json"
    project_namespace: str = "generator-jhipster"

    # AWS
    default_region: str = "us-east-1"
    aws_endpoint_url: str | None = None  # LocalStack and friends
    solution_stack_name: str = Field(
        default="64bit Amazon Linux 2 v4.2.0 running Tomcat 8.5 Corretto 11"
    )
    db_allocated_storage: int = 5
    db_wait_delay_seconds: int = 30
    db_wait_max_attempts: int = 60  # 30 minutes at the default delay

    # Build
    build_timeout_seconds: int = 1800

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
