"""Configuration management for the Docker action executor.

This module provides a unified Settings class with flat fields that can be
set from the environment (or a ``.env`` file), plus grouped views for each
concern.

Usage:
    from docker_executor.config import settings

    # Access grouped settings
    settings.docker.docker_base_url
    settings.execution.image_pull_timeout_seconds

    # Or use flat access
    settings.image_pull_timeout_seconds
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Import grouped configurations
from .docker import DockerConfig
from .execution import ExecutionConfig
from .logging import LoggingConfig


class Settings(BaseSettings):
    """Executor settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Docker Runtime Configuration
    docker_base_url: Optional[str] = Field(
        default=None,
        description="Docker daemon URL; falls back to DOCKER_HOST or the local socket",
    )
    docker_api_version: str = Field(default="auto")
    docker_api_timeout_seconds: int = Field(
        default=60,
        ge=1,
        le=3600,
        description="Socket timeout for individual Docker API calls",
    )
    docker_tls_verify: bool = Field(default=False)
    docker_max_pool_size: int = Field(default=10, ge=1, le=100)

    # Image Provisioning
    image_pull_timeout_seconds: int = Field(
        default=60,
        ge=1,
        le=3600,
        description="Ceiling on how long a missing image pull may block an action",
    )

    # Command Execution
    default_execution_timeout_seconds: int = Field(default=600, ge=1, le=86400)
    wait_poll_interval_seconds: float = Field(
        default=0.1,
        gt=0,
        le=5,
        description="How often blocking waits check for cancellation",
    )

    # Exit Code Inspection
    exit_code_retry_attempts: int = Field(default=5, ge=1, le=50)
    exit_code_retry_backoff_seconds: float = Field(default=0.05, gt=0, le=5)
    exit_code_retry_backoff_max_seconds: float = Field(default=1.0, gt=0, le=30)

    # Container Defaults
    container_keepalive_command: List[str] = Field(
        default_factory=lambda: ["tail", "-f", "/dev/null"],
        description="Entrypoint that keeps the container alive for exec",
    )
    container_label_prefix: str = Field(default="com.docker-executor")

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    @field_validator("container_keepalive_command")
    @classmethod
    def validate_keepalive_command(cls, v):
        """Reject an empty keepalive entrypoint."""
        if not v:
            raise ValueError("container_keepalive_command must not be empty")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Only json and console renderers are supported."""
        normalized = v.lower().strip()
        if normalized not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return normalized

    @field_validator("docker_base_url")
    @classmethod
    def normalize_docker_base_url(cls, v):
        """Treat an empty string as unset."""
        if v is None:
            return None
        return v.strip() or None

    # ========================================================================
    # GROUPED CONFIG ACCESS
    # ========================================================================

    @property
    def docker(self) -> DockerConfig:
        """Access Docker runtime configuration group."""
        return DockerConfig(
            docker_base_url=self.docker_base_url,
            docker_api_version=self.docker_api_version,
            docker_api_timeout_seconds=self.docker_api_timeout_seconds,
            docker_tls_verify=self.docker_tls_verify,
            docker_max_pool_size=self.docker_max_pool_size,
        )

    @property
    def execution(self) -> ExecutionConfig:
        """Access execution configuration group."""
        return ExecutionConfig(
            image_pull_timeout_seconds=self.image_pull_timeout_seconds,
            default_execution_timeout_seconds=self.default_execution_timeout_seconds,
            wait_poll_interval_seconds=self.wait_poll_interval_seconds,
            exit_code_retry_attempts=self.exit_code_retry_attempts,
            exit_code_retry_backoff_seconds=self.exit_code_retry_backoff_seconds,
            exit_code_retry_backoff_max_seconds=self.exit_code_retry_backoff_max_seconds,
            container_keepalive_command=list(self.container_keepalive_command),
            container_label_prefix=self.container_label_prefix,
        )

    @property
    def logging(self) -> LoggingConfig:
        """Access logging configuration group."""
        return LoggingConfig(
            log_level=self.log_level,
            log_format=self.log_format,
            log_file=self.log_file,
        )


# Global settings instance
settings = Settings()

__all__ = [
    "Settings",
    "settings",
    "DockerConfig",
    "ExecutionConfig",
    "LoggingConfig",
]
