"""Action execution limits and container defaults."""

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings


class ExecutionConfig(BaseSettings):
    """Timeouts, retry policy and container defaults for action execution."""

    # Image provisioning
    image_pull_timeout_seconds: int = Field(default=60, ge=1, le=3600)

    # Command execution
    default_execution_timeout_seconds: int = Field(default=600, ge=1, le=86400)
    wait_poll_interval_seconds: float = Field(default=0.1, gt=0, le=5)

    # Exit code inspection
    exit_code_retry_attempts: int = Field(default=5, ge=1, le=50)
    exit_code_retry_backoff_seconds: float = Field(default=0.05, gt=0, le=5)
    exit_code_retry_backoff_max_seconds: float = Field(default=1.0, gt=0, le=30)

    # Container defaults
    container_keepalive_command: List[str] = Field(
        default_factory=lambda: ["tail", "-f", "/dev/null"]
    )
    container_label_prefix: str = Field(default="com.docker-executor")

    class Config:
        env_prefix = ""
        extra = "ignore"
